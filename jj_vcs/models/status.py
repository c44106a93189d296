"""
Working-copy status models.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List


class ChangeKind(Enum):
    """Kind of change reported for a path."""

    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    MOVED = "moved"


@dataclass(frozen=True)
class FileStatus:
    """A single changed path in the working copy."""

    path: str
    kind: ChangeKind

    def with_path(self, path: str) -> "FileStatus":
        """Return a copy pointing at a different path."""
        return replace(self, path=path)


@dataclass
class StatusSummary:
    """
    Changes in the working copy, grouped by kind.

    Each group keeps the order in which the external tool reported the
    paths.
    """

    added: List[FileStatus] = field(default_factory=list)
    deleted: List[FileStatus] = field(default_factory=list)
    modified: List[FileStatus] = field(default_factory=list)
    moved: List[FileStatus] = field(default_factory=list)

    def group(self, kind: ChangeKind) -> List[FileStatus]:
        """Return the list holding entries of the given kind."""
        return {
            ChangeKind.ADDED: self.added,
            ChangeKind.DELETED: self.deleted,
            ChangeKind.MODIFIED: self.modified,
            ChangeKind.MOVED: self.moved,
        }[kind]

    def add(self, path: str, kind: ChangeKind) -> FileStatus:
        """Append a new entry to the group for its kind."""
        entry = FileStatus(path=path, kind=kind)
        self.group(kind).append(entry)
        return entry

    def all_files(self) -> List[FileStatus]:
        """All entries in display order: modified, added, deleted, moved."""
        return [*self.modified, *self.added, *self.deleted, *self.moved]

    @property
    def total(self) -> int:
        return len(self.added) + len(self.deleted) + len(self.modified) + len(self.moved)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def map_paths(self, transform: Callable[[str], str]) -> "StatusSummary":
        """Return a new summary with every path passed through ``transform``."""
        return StatusSummary(
            added=[f.with_path(transform(f.path)) for f in self.added],
            deleted=[f.with_path(transform(f.path)) for f in self.deleted],
            modified=[f.with_path(transform(f.path)) for f in self.modified],
            moved=[f.with_path(transform(f.path)) for f in self.moved],
        )

    def paths(self, kind: ChangeKind) -> List[str]:
        """Paths of one group, in reported order."""
        return [f.path for f in self.group(kind)]
