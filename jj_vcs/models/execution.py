"""
Process execution result models.
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class ProcessResult:
    """Output of a successful (zero exit) process invocation."""

    command: str
    args: Tuple[str, ...] = field(default_factory=tuple)
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def has_warnings(self) -> bool:
        """True when the process succeeded but still wrote to stderr."""
        return bool(self.stderr.strip())
