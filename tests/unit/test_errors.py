"""Tests for custom exception hierarchy in toolscope.lib.errors."""

from toolscope.lib.errors import (
    CancellationError,
    CategorizationError,
    ConfigError,
    EmbeddingServiceError,
    ToolScopeError,
)


class TestToolScopeError:
    """Tests for base ToolScopeError exception."""

    def test_creates_with_message(self) -> None:
        """Test that ToolScopeError can be created with a message."""
        error = ToolScopeError("Test error message")
        assert str(error) == "Test error message"

    def test_is_exception(self) -> None:
        """Test that ToolScopeError is an Exception subclass."""
        assert isinstance(ToolScopeError("Test"), Exception)


class TestConfigError:
    """Tests for ConfigError exception."""

    def test_formats_message_with_field(self) -> None:
        """Test that ConfigError formats messages with field information."""
        error = ConfigError("hard_tool_limit", "must be positive")
        expected = "Configuration error in 'hard_tool_limit': must be positive"
        assert str(error) == expected

    def test_preserves_attributes(self) -> None:
        """Test field and message are available separately."""
        error = ConfigError("path", "not found")
        assert error.field == "path"
        assert error.message == "not found"

    def test_is_toolscope_error(self) -> None:
        """Test that ConfigError is a ToolScopeError subclass."""
        assert isinstance(ConfigError("f", "m"), ToolScopeError)


class TestCategorizationError:
    """Tests for CategorizationError exception."""

    def test_keeps_raw_output(self) -> None:
        """Test the unparseable model output is preserved."""
        error = CategorizationError("bad JSON", raw_output="not json")
        assert str(error) == "bad JSON"
        assert error.raw_output == "not json"

    def test_raw_output_optional(self) -> None:
        """Test raw_output defaults to None."""
        assert CategorizationError("bad").raw_output is None


class TestEmbeddingServiceError:
    """Tests for EmbeddingServiceError exception."""

    def test_sizes(self) -> None:
        """Test requested and received counts are recorded."""
        error = EmbeddingServiceError("mismatch", requested=3, received=1)
        assert error.requested == 3
        assert error.received == 1
        assert isinstance(error, ToolScopeError)


class TestCancellationError:
    """Tests for CancellationError exception."""

    def test_default_message(self) -> None:
        """Test the default message."""
        assert str(CancellationError()) == "Operation was cancelled"

    def test_not_asyncio_cancelled_error(self) -> None:
        """Test cancellation is an ordinary ToolScopeError."""
        assert isinstance(CancellationError(), ToolScopeError)
