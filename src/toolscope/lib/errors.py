"""Custom exception hierarchy for toolscope configuration and operations."""


class ToolScopeError(Exception):
    """Base exception for all toolscope errors.

    All toolscope-specific exceptions inherit from this class, enabling
    centralized exception handling and error tracking.
    """

    pass


class ConfigError(ToolScopeError):
    """Exception raised for configuration errors.

    This exception is raised when configuration loading or parsing fails.
    It includes field-specific information to help users identify and fix
    configuration issues.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class CategorizationError(ToolScopeError):
    """Exception raised when the categorization model returns an unusable result.

    Raised for malformed or empty model output. The grouper treats it like
    any other failed attempt and retries.

    Attributes:
        message: Human-readable error message
    """

    def __init__(self, message: str, raw_output: str | None = None) -> None:
        """Create a categorization error.

        Args:
            message: Description of what went wrong
            raw_output: The model output that could not be parsed, if any
        """
        self.message = message
        self.raw_output = raw_output
        super().__init__(message)


class EmbeddingServiceError(ToolScopeError):
    """Exception raised when the embedding service cannot produce vectors."""

    def __init__(self, message: str, requested: int = 0, received: int = 0) -> None:
        """Create an embedding service error with request/response sizes."""
        self.message = message
        self.requested = requested
        self.received = received
        super().__init__(message)


class CancellationError(ToolScopeError):
    """Exception raised when an operation observes a cancelled token.

    Distinct from ordinary failures: the grouper never retries it.
    """

    def __init__(self, message: str = "Operation was cancelled") -> None:
        """Create a cancellation error."""
        self.message = message
        super().__init__(message)
