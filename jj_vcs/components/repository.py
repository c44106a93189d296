"""
Repository facade for a single jj working copy.

This module provides the JjRepository class that binds the process runner
and the status parser to one working-copy root and translates raw process
failures into domain errors.
"""

import os
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..errors import ExecutionError, FailureKind, ValidationError
from ..interfaces import IProcessRunner, IStatusParser
from ..models.execution import ProcessResult
from ..models.status import StatusSummary
from ..utils.error_handling import (
    COMMIT_RULES,
    MERGE_RULES,
    UNRECOGNIZED_SUBCOMMAND,
    VERIFY_RULES,
    ErrorCategory,
    ErrorSeverity,
    translate_execution_error,
    with_error_handling,
)
from ..utils.logging import get_logger
from .process_runner import ProcessRunner
from .status_parser import StatusParser

DEFAULT_LOG_LIMIT = 20

ROOT_ARGS = ["root"]
DIFF_SUMMARY_ARGS = ["diff", "--summary", "--no-pager"]
BOOKMARK_LIST_ARGS = ["bookmark", "list", "--no-pager"]
LEGACY_BRANCH_LIST_ARGS = ["branch", "list", "--no-pager"]
LOG_TEMPLATE = 'description.first_line() ++ "\\n"'
PREVIOUS_REVISION = "@-"
NO_MATCHING_ENTRIES = "No matching entries"

logger = get_logger("repository")


def is_repository_root(path: Union[str, Path]) -> bool:
    """True when ``path`` holds a ``.jj`` directory."""
    return (Path(path) / ".jj").is_dir()


def _quote_fileset(path: str) -> str:
    escaped = path.replace("\\", "\\\\").replace('"', '\\"')
    return f'root-file:"{escaped}"'


class JjRepository:
    """
    Operations against one jj working copy.

    The facade keeps no state besides its root and collaborators. Every
    method is an independent round trip to the jj binary. Only commit() and
    merge_branch() modify the repository.
    """

    def __init__(
        self,
        root: Union[str, Path],
        runner: Optional[IProcessRunner] = None,
        parser: Optional[IStatusParser] = None,
        log_limit: int = DEFAULT_LOG_LIMIT,
    ):
        """
        Initialize JjRepository.

        Args:
            root: Working-copy root directory
            runner: Process runner; a default ``jj`` runner when omitted
            parser: Status parser; one matching the runner's tool name when
                omitted
            log_limit: Default number of history entries returned by log()
        """
        self._root = str(root)
        self.runner = runner or ProcessRunner()
        self.parser = parser or StatusParser(self.runner.tool_name)
        self.log_limit = log_limit

    @property
    def root_path(self) -> str:
        return self._root

    async def _execute(self, args: Sequence[str]) -> str:
        return await self.runner.execute(args, cwd=self._root)

    async def verify(self) -> str:
        """
        Check that the root is a jj repository the binary can operate on.

        Returns:
            The workspace root reported by jj

        Raises:
            NotARepositoryError: If jj does not recognise the root
            ExecutionError: For any other failure, e.g. jj not installed
        """
        try:
            output = await self._execute(ROOT_ARGS)
        except ExecutionError as e:
            domain_error = translate_execution_error(e, VERIFY_RULES, root=self._root)
            if domain_error is not None:
                raise domain_error
            raise

        logger.info("Repository verified", extra={"root": self._root})
        return output.strip()

    async def status(self) -> StatusSummary:
        """Return working-copy changes with absolute paths."""
        summary = self.parser.parse(await self.diff())
        return summary.map_paths(self._make_absolute)

    def _make_absolute(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(self._root, path))

    async def commit(self, message: str) -> None:
        """
        Commit the working-copy change with the given description.

        Raises:
            ValidationError: If the message is empty or whitespace
            NothingToCommitError: If jj reports there is nothing to commit
        """
        if not message or not message.strip():
            raise ValidationError("Commit message cannot be empty")

        try:
            await self._execute(["commit", f"--message={message}"])
        except ExecutionError as e:
            domain_error = translate_execution_error(e, COMMIT_RULES)
            if domain_error is not None:
                raise domain_error
            raise

        logger.info("Changes committed", extra={"root": self._root})

    async def diff(self) -> str:
        """Raw ``jj diff --summary`` text for the working copy."""
        return await self._execute(DIFF_SUMMARY_ARGS)

    @with_error_handling(
        component="repository",
        category=ErrorCategory.EXECUTION,
        severity=ErrorSeverity.LOW,
        fallback_value=[],
        suppress_exceptions=True,
    )
    async def log(self, limit: Optional[int] = None) -> List[str]:
        """
        Most recent change descriptions, newest first.

        History is advisory: any failure yields an empty list.
        """
        limit = self.log_limit if limit is None else limit
        if limit <= 0:
            return []

        output = await self._execute(
            [
                "log",
                "--no-pager",
                "--no-graph",
                "-r",
                "::@",
                "-n",
                str(limit),
                "-T",
                LOG_TEMPLATE,
            ]
        )
        return [line for line in output.splitlines() if line.strip()]

    async def list_branches(self) -> List[str]:
        """
        Names of all bookmarks.

        Falls back to the pre-bookmark ``jj branch list`` command on jj
        versions that do not know ``bookmark``.
        """
        result = await self._run_with_fallback(BOOKMARK_LIST_ARGS, LEGACY_BRANCH_LIST_ARGS)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def merge_branch(self, name: str) -> None:
        """
        Create a merge change with the branch and the working copy as parents.

        Raises:
            ValidationError: If the name is empty or whitespace
            BranchNotFoundError: If the branch does not resolve
            ConcurrentModificationError: If the repository changed meanwhile
        """
        if not name or not name.strip():
            raise ValidationError("Branch name cannot be empty")

        try:
            await self._execute(["new", "--", name, "@"])
        except ExecutionError as e:
            domain_error = translate_execution_error(e, MERGE_RULES, branch=name)
            if domain_error is not None:
                raise domain_error
            raise

        logger.info("Branch merged", extra={"root": self._root, "branch": name})

    async def get_previous_file_content(self, path: str) -> str:
        """
        Content of a file as of the parent of the working-copy change.

        Args:
            path: Repo-relative path; absolute paths inside the root are
                accepted and made relative

        Raises:
            ValidationError: If the path is empty or outside the root
            ExecutionError: If the path did not exist in that revision
        """
        relative = self._make_relative(path)
        fileset = _quote_fileset(relative)

        result = await self._run_with_fallback(
            ["file", "show", "--no-pager", "-r", PREVIOUS_REVISION, fileset],
            ["cat", "--no-pager", "-r", PREVIOUS_REVISION, fileset],
        )

        if NO_MATCHING_ENTRIES in result.stderr:
            raise ExecutionError(
                f"{relative} does not exist in revision {PREVIOUS_REVISION}",
                command=result.command,
                args=result.args,
                kind=FailureKind.UNKNOWN,
                stderr=result.stderr,
                exit_code=result.exit_code,
            )

        return result.stdout

    def _make_relative(self, path: str) -> str:
        if not path or not path.strip():
            raise ValidationError("File path cannot be empty")

        if os.path.isabs(path):
            relative = os.path.relpath(path, self._root)
            if relative == os.pardir or relative.startswith(os.pardir + os.sep):
                raise ValidationError(f"{path} is outside the repository {self._root}")
            path = relative

        return path.replace(os.sep, "/")

    async def _run_with_fallback(
        self, primary: Sequence[str], fallback: Sequence[str]
    ) -> ProcessResult:
        """
        Run ``primary``; on an unknown-subcommand failure run ``fallback``.

        When the fallback fails too, the primary error is raised.
        """
        try:
            return await self.runner.run(primary, cwd=self._root)
        except ExecutionError as primary_error:
            if not primary_error.stderr_contains(UNRECOGNIZED_SUBCOMMAND):
                raise

            logger.info(
                "Subcommand not recognised, trying legacy form",
                extra={"primary": " ".join(primary), "fallback": " ".join(fallback)},
            )
            try:
                return await self.runner.run(fallback, cwd=self._root)
            except ExecutionError as fallback_error:
                logger.warning(
                    "Legacy command failed as well",
                    extra={"error": fallback_error.message},
                )
                raise primary_error
