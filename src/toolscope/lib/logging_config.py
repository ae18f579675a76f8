"""Logging configuration for toolscope.

All modules obtain their logger through ``get_logger(__name__)`` so that the
package shares one configurable hierarchy under the ``toolscope`` root logger.
Applications embedding the engine call ``setup_logging`` once at startup.
"""

import logging
import sys

PACKAGE_LOGGER_NAME = "toolscope"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger that lives under the package hierarchy.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Logger instance.
    """
    if name != PACKAGE_LOGGER_NAME and not name.startswith(f"{PACKAGE_LOGGER_NAME}."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the package logger.

    Args:
        verbose: Enable DEBUG level with file/line information.
        quiet: Only emit WARNING and above. Ignored when ``verbose`` is set.
    """
    global _configured

    if verbose:
        level = logging.DEBUG
        fmt = VERBOSE_FORMAT
    elif quiet:
        level = logging.WARNING
        fmt = DEFAULT_FORMAT
    else:
        level = logging.INFO
        fmt = DEFAULT_FORMAT

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level)

    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt))
        package_logger.addHandler(handler)
        package_logger.propagate = False
        _configured = True
    else:
        for handler in package_logger.handlers:
            handler.setFormatter(logging.Formatter(fmt))

    package_logger.debug(f"Logging configured: level={logging.getLevelName(level)}")
