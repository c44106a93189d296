"""
Core components of the jj VCS layer.

This module contains the process runner, the status parser and the
repository facade built on top of them.
"""

from .process_runner import ProcessRunner
from .repository import JjRepository, is_repository_root
from .serialized_repository import SerializedRepository, create_repository
from .status_parser import StatusParser, extract_new_path_from_rename, parse_status_output

__all__ = [
    "ProcessRunner",
    "StatusParser",
    "parse_status_output",
    "extract_new_path_from_rename",
    "JjRepository",
    "SerializedRepository",
    "create_repository",
    "is_repository_root",
]
