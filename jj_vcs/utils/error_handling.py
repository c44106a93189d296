"""
Error handling utilities for the jj VCS core.

This module holds the ordered stderr rule tables that turn raw process
failures into readable messages and domain errors, a small error tracker
for diagnostics, and a decorator for operations that degrade gracefully.
"""

import copy
import functools
import inspect
import re
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import (
    BranchNotFoundError,
    ConcurrentModificationError,
    DomainError,
    ExecutionError,
    NotARepositoryError,
    NothingToCommitError,
)
from .logging import get_logger

UNRECOGNIZED_SUBCOMMAND = "unrecognized subcommand"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    VALIDATION = "validation"
    EXECUTION = "execution"
    DOMAIN = "domain"
    CONFIGURATION = "configuration"
    PARSING = "parsing"


@dataclass(frozen=True)
class StderrRule:
    """
    One row of an ordered stderr classification table.

    A rule matches when ``pattern`` occurs in stderr (case-sensitive). With
    ``regex=True`` the pattern is searched as a regular expression instead.
    ``message`` is used by message tables; ``error_factory`` by domain
    tables, where it receives the original ExecutionError and the call
    context and returns the DomainError to raise.
    """

    pattern: str
    message: str = ""
    regex: bool = False
    error_factory: Optional[Callable[[ExecutionError, Dict[str, Any]], DomainError]] = None

    def matches(self, stderr: Optional[str]) -> bool:
        if not stderr:
            return False
        if self.regex:
            return re.search(self.pattern, stderr) is not None
        return self.pattern in stderr


# Order matters: the first matching row wins.
EXECUTION_MESSAGE_RULES: List[StderrRule] = [
    StderrRule("No such revset", "Invalid revision or branch reference"),
    StderrRule("Concurrent modification", "Repository was modified by another process"),
    StderrRule("Permission denied", "Permission denied accessing repository"),
    StderrRule(r"not a valid .*repository", "Not a valid repository", regex=True),
]

VERIFY_RULES: List[StderrRule] = [
    StderrRule(
        r"not a valid .*repository",
        regex=True,
        error_factory=lambda err, ctx: NotARepositoryError(ctx["root"], err),
    ),
    StderrRule(
        "There is no jj repo",
        error_factory=lambda err, ctx: NotARepositoryError(ctx["root"], err),
    ),
]

COMMIT_RULES: List[StderrRule] = [
    StderrRule(
        "nothing to commit",
        error_factory=lambda err, ctx: NothingToCommitError(execution_error=err),
    ),
]

MERGE_RULES: List[StderrRule] = [
    StderrRule(
        "No such revset",
        error_factory=lambda err, ctx: BranchNotFoundError(ctx["branch"], err),
    ),
    StderrRule(
        "Concurrent modification",
        error_factory=lambda err, ctx: ConcurrentModificationError(execution_error=err),
    ),
]


def match_stderr_rule(
    stderr: Optional[str], rules: Sequence[StderrRule]
) -> Optional[StderrRule]:
    """Return the first rule matching stderr, or None."""
    for rule in rules:
        if rule.matches(stderr):
            return rule
    return None


def describe_failure(
    stderr: Optional[str],
    exit_code: Optional[int],
    tool_name: str = "jj",
    rules: Sequence[StderrRule] = EXECUTION_MESSAGE_RULES,
) -> str:
    """
    Derive a human readable message for a non-zero exit.

    Falls back to the first non-empty stderr line, then to a generic message
    naming the exit code.
    """
    rule = match_stderr_rule(stderr, rules)
    if rule is not None:
        return rule.message

    for line in (stderr or "").splitlines():
        if line.strip():
            return line.strip()

    return f"{tool_name} command failed with exit code {exit_code}"


def translate_execution_error(
    error: ExecutionError, rules: Sequence[StderrRule], **context: Any
) -> Optional[DomainError]:
    """
    Map an ExecutionError through a domain rule table.

    Returns the DomainError for the first matching rule, or None when no rule
    applies and the raw error should propagate.
    """
    rule = match_stderr_rule(error.stderr, rules)
    if rule is None or rule.error_factory is None:
        return None
    return rule.error_factory(error, context)


@dataclass
class ErrorInfo:
    """Information about an error occurrence."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    traceback: str
    context: Dict[str, Any]


class ErrorTracker:
    """
    Tracks errors and provides statistics for diagnostics.
    """

    def __init__(self, max_errors: int = 1000):
        """
        Initialize error tracker.

        Args:
            max_errors: Maximum number of errors to keep in memory
        """
        self.max_errors = max_errors
        self.errors: List[ErrorInfo] = []
        self.error_counts: Dict[str, int] = {}
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """
        Record an error occurrence.

        Args:
            component: Component where error occurred
            category: Error category
            severity: Error severity
            message: Error message
            exception: Exception object if available
            context: Additional context information

        Returns:
            ErrorInfo object
        """
        error_info = ErrorInfo(
            timestamp=datetime.now(),
            component=component,
            category=category,
            severity=severity,
            message=message,
            exception_type=type(exception).__name__ if exception else "Unknown",
            traceback=(
                "".join(
                    traceback.format_exception(
                        type(exception), exception, exception.__traceback__
                    )
                )
                if exception
                else ""
            ),
            context=context or {},
        )

        self.errors.append(error_info)
        if len(self.errors) > self.max_errors:
            self.errors.pop(0)

        error_key = f"{component}.{category.value}.{severity.value}"
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        self.logger.warning(
            f"Error recorded: {message}",
            extra={
                "error_component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "context": context,
            },
        )

        return error_info

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        last_hour = datetime.now() - timedelta(hours=1)

        return {
            "total_errors": len(self.errors),
            "errors_last_hour": len([e for e in self.errors if e.timestamp >= last_hour]),
            "error_counts": self.error_counts.copy(),
            "category_breakdown": {
                category.value: len([e for e in self.errors if e.category == category])
                for category in ErrorCategory
            },
        }

    def get_component_errors(self, component: str, limit: int = 10) -> List[ErrorInfo]:
        """Get recent errors for a specific component."""
        return [e for e in self.errors if e.component == component][-limit:]

    def clear(self):
        """Forget all recorded errors."""
        self.errors.clear()
        self.error_counts.clear()


# Global error tracker instance
_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """Get global error tracker instance."""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker()
    return _error_tracker


def with_error_handling(
    component: str,
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    fallback_value: Any = None,
    suppress_exceptions: bool = False,
):
    """
    Decorator that records failures and optionally degrades to a fallback.

    Args:
        component: Component name
        category: Error category
        severity: Error severity
        fallback_value: Value returned on failure; a fresh copy per call
        suppress_exceptions: Whether to return the fallback instead of raising
    """

    def decorator(func: Callable) -> Callable:
        def handle(e: Exception):
            get_error_tracker().record_error(
                component=component,
                category=category,
                severity=severity,
                message=f"Error in {func.__name__}: {e}",
                exception=e,
                context={"function": func.__name__},
            )
            if not suppress_exceptions:
                raise e
            get_logger(component).warning(
                f"Suppressing exception in {func.__name__}: {e}"
            )
            return copy.copy(fallback_value)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                return handle(e)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                return handle(e)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
