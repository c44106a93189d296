"""
Protocol interfaces for the jj VCS core.

These protocols mark the seams between the process runner, the status
parser and the repository facade so that consumers can substitute their own
implementations (for example a caching layer above the facade).
"""

from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from .models.execution import ProcessResult
from .models.status import StatusSummary


class IProcessRunner(Protocol):
    """Protocol for running the external tool."""

    @property
    def tool_name(self) -> str:
        """Bare name of the executable."""
        ...

    async def execute(
        self,
        args: Sequence[str],
        cwd: Union[str, Path],
        timeout_ms: Optional[int] = None,
    ) -> str:
        """Run the tool and return stdout, raising ExecutionError on failure."""
        ...

    async def run(
        self,
        args: Sequence[str],
        cwd: Union[str, Path],
        timeout_ms: Optional[int] = None,
    ) -> ProcessResult:
        """Run the tool and return stdout and stderr of a zero exit."""
        ...


class IStatusParser(Protocol):
    """Protocol for parsing change-summary text."""

    def parse(self, raw_text: Optional[str]) -> StatusSummary:
        """Parse summary text. Must never raise."""
        ...


class IRepository(Protocol):
    """Protocol for working-copy operations."""

    @property
    def root_path(self) -> str:
        """Working-copy root."""
        ...

    async def verify(self) -> str:
        """Check the root is a usable repository."""
        ...

    async def status(self) -> StatusSummary:
        """Working-copy changes with absolute paths."""
        ...

    async def commit(self, message: str) -> None:
        """Commit the working-copy change."""
        ...

    async def diff(self) -> str:
        """Raw change summary text."""
        ...

    async def log(self, limit: Optional[int] = None) -> List[str]:
        """Recent change descriptions, newest first."""
        ...

    async def list_branches(self) -> List[str]:
        """Bookmark names."""
        ...

    async def merge_branch(self, name: str) -> None:
        """Merge a branch into the working copy."""
        ...

    async def get_previous_file_content(self, path: str) -> str:
        """File content as of the previous revision."""
        ...
