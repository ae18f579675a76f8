"""Pytest configuration and shared fixtures for toolscope tests."""

import logging
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for test file operations.

    Yields:
        Path to temporary directory

    Cleanup:
        Automatically removes directory after test
    """
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def toolscope_caplog(
    caplog: pytest.LogCaptureFixture,
) -> Generator[pytest.LogCaptureFixture]:
    """Capture records from the package logger.

    setup_logging() disables propagation on the package logger, so records are
    captured by attaching the caplog handler to it directly.
    """
    package_logger = logging.getLogger("toolscope")
    package_logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="toolscope")
    yield caplog
    package_logger.removeHandler(caplog.handler)


# Configure pytest
def pytest_configure(config: Any) -> None:
    """Configure pytest with marker options."""
    # Register custom markers
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests",
    )
