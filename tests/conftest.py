"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the jj VCS core test suite.
"""

import logging
import os
from pathlib import Path
from typing import Sequence
from unittest.mock import AsyncMock, Mock

import pytest

import jj_vcs.utils.logging as logging_module
from jj_vcs.components.repository import JjRepository
from jj_vcs.errors import ExecutionError, FailureKind
from jj_vcs.models.execution import ProcessResult
from jj_vcs.utils.error_handling import describe_failure, get_error_tracker


# Repository fixtures
@pytest.fixture
def temp_jj_repo(tmp_path: Path) -> Path:
    """Create a directory that looks like a jj working copy."""
    (tmp_path / ".jj").mkdir()
    return tmp_path


@pytest.fixture
def mock_runner() -> Mock:
    """Create a process runner double with async execute/run."""
    runner = Mock()
    runner.tool_name = "jj"
    runner.execute = AsyncMock(return_value="")
    runner.run = AsyncMock(return_value=ProcessResult(command="jj"))
    return runner


@pytest.fixture
def repo(mock_runner: Mock) -> JjRepository:
    """Create a JjRepository rooted at /repo backed by the mock runner."""
    return JjRepository(os.path.abspath("/repo"), runner=mock_runner)


@pytest.fixture
def make_execution_error():
    """Factory for non-zero-exit ExecutionErrors with a given stderr."""

    def factory(
        stderr: str, exit_code: int = 1, args: Sequence[str] = ("diff",)
    ) -> ExecutionError:
        return ExecutionError(
            describe_failure(stderr, exit_code),
            command="jj",
            args=args,
            kind=FailureKind.NON_ZERO_EXIT,
            stderr=stderr,
            exit_code=exit_code,
        )

    return factory


@pytest.fixture
def make_process_result():
    """Factory for successful ProcessResults."""

    def factory(stdout: str = "", stderr: str = "") -> ProcessResult:
        return ProcessResult(command="jj", stdout=stdout, stderr=stderr)

    return factory


@pytest.fixture(autouse=True)
def clear_error_tracker():
    """Keep the global error tracker isolated between tests."""
    get_error_tracker().clear()
    yield
    get_error_tracker().clear()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers and the global manager installed by a test."""
    yield
    logging_module._logging_manager = None
    names = [logging_module.ROOT_LOGGER_NAME] + [
        f"{logging_module.ROOT_LOGGER_NAME}.{c}" for c in logging_module.COMPONENTS
    ]
    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


# Environment fixtures
@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment overrides that would leak into configuration."""
    for name in ("JJ_VCS_BINARY", "JJ_VCS_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Add the unit marker to every test not marked integration or slow."""
    for item in items:
        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
