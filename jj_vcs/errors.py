"""
Exception hierarchy for the jj VCS core.

Three families of failure are distinguished:

- ValidationError: a local precondition failed and no process was spawned.
- ExecutionError: the external process failed; carries the full context.
- DomainError: an ExecutionError reinterpreted through a stderr rule table.
"""

from enum import Enum
from typing import Optional, Sequence, Tuple


class FailureKind(Enum):
    """How an external process invocation failed."""

    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    NON_ZERO_EXIT = "non_zero_exit"
    UNKNOWN = "unknown"


class JjVcsError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(JjVcsError, ValueError):
    """A caller-supplied value was rejected before any process was spawned."""


class ExecutionError(JjVcsError):
    """
    Failure of an external process invocation.

    Instances are treated as immutable values: every attribute is set once
    in the constructor and the original failure is kept both as ``cause``
    and as the exception's ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        command: str,
        args: Sequence[str] = (),
        kind: FailureKind = FailureKind.UNKNOWN,
        stderr: Optional[str] = None,
        exit_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.command = command
        self.arguments: Tuple[str, ...] = tuple(args)
        self.kind = kind
        self.stderr = stderr
        self.exit_code = exit_code
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def command_line(self) -> str:
        """The invocation as a single display string."""
        return " ".join([self.command, *self.arguments])

    def stderr_contains(self, text: str) -> bool:
        """Case-sensitive substring check against captured stderr."""
        return bool(self.stderr) and text in self.stderr

    def __repr__(self) -> str:
        return (
            f"ExecutionError(kind={self.kind.value!r}, message={self.message!r}, "
            f"command={self.command_line!r}, exit_code={self.exit_code!r})"
        )


class DomainError(JjVcsError):
    """Business-meaningful reinterpretation of an ExecutionError."""

    def __init__(
        self, message: str, execution_error: Optional[ExecutionError] = None
    ):
        super().__init__(message)
        self.message = message
        self.execution_error = execution_error
        if execution_error is not None:
            self.__cause__ = execution_error


class NotARepositoryError(DomainError):
    """The working-copy root is not a jj repository."""

    def __init__(self, root: str, execution_error: Optional[ExecutionError] = None):
        super().__init__(f"{root} is not a valid jj repository", execution_error)
        self.root = root


class BranchNotFoundError(DomainError):
    """A referenced branch or bookmark does not resolve to a revision."""

    def __init__(self, branch: str, execution_error: Optional[ExecutionError] = None):
        super().__init__(f"Branch {branch} does not exist", execution_error)
        self.branch = branch


class ConcurrentModificationError(DomainError):
    """The repository changed underneath the operation."""

    def __init__(
        self,
        message: str = (
            "Repository was modified by another process. "
            "Please refresh and try again."
        ),
        execution_error: Optional[ExecutionError] = None,
    ):
        super().__init__(message, execution_error)


class NothingToCommitError(DomainError):
    """A commit was requested but the working copy has no changes."""

    def __init__(
        self,
        message: str = "Nothing to commit",
        execution_error: Optional[ExecutionError] = None,
    ):
        super().__init__(message, execution_error)
