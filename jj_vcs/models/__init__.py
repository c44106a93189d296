"""
Data models for the jj VCS core.

This module contains the value types shared by the runner, the parser and
the repository facade.
"""

from .config import Configuration
from .execution import ProcessResult
from .status import ChangeKind, FileStatus, StatusSummary

__all__ = [
    "ChangeKind",
    "FileStatus",
    "StatusSummary",
    "ProcessResult",
    "Configuration",
]
