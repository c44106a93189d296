"""
Unit tests for the JjRepository facade.

The process runner is replaced by a double so that each test controls the
stdout or ExecutionError returned for every invocation.
"""

import os
from pathlib import Path

import pytest

from jj_vcs.components.process_runner import ProcessRunner
from jj_vcs.components.repository import JjRepository, is_repository_root
from jj_vcs.errors import (
    BranchNotFoundError,
    ConcurrentModificationError,
    DomainError,
    ExecutionError,
    NotARepositoryError,
    NothingToCommitError,
    ValidationError,
)
from jj_vcs.utils.error_handling import get_error_tracker

ROOT = os.path.abspath("/repo")


def called_args(mock, index: int = 0):
    """Positional argument list of the n-th call to a runner method."""
    return list(mock.call_args_list[index].args[0])


class TestRepositoryConstruction:
    """Test cases for facade construction."""

    def test_root_path(self, repo: JjRepository):
        """Test the root is exposed unchanged."""
        assert repo.root_path == ROOT

    def test_default_collaborators(self, tmp_path: Path):
        """Test defaults create a jj runner and matching parser."""
        repo = JjRepository(tmp_path)

        assert isinstance(repo.runner, ProcessRunner)
        assert repo.parser.tool_name == "jj"
        assert repo.log_limit == 20

    def test_is_repository_root(self, temp_jj_repo: Path, tmp_path: Path):
        """Test detection of the .jj directory."""
        assert is_repository_root(temp_jj_repo)
        assert not is_repository_root(tmp_path / "elsewhere")


class TestVerify:
    """Test cases for verify()."""

    @pytest.mark.asyncio
    async def test_verify_success(self, repo: JjRepository, mock_runner):
        """Test verify returns the root reported by jj."""
        mock_runner.execute.return_value = f"{ROOT}\n"

        assert await repo.verify() == ROOT
        assert called_args(mock_runner.execute) == ["root"]
        assert mock_runner.execute.call_args.kwargs["cwd"] == ROOT

    @pytest.mark.asyncio
    async def test_verify_not_a_repository(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test invalid repository errors are rewritten with the root."""
        original = make_execution_error("Error: not a valid jj repository")
        mock_runner.execute.side_effect = original

        with pytest.raises(NotARepositoryError) as exc_info:
            await repo.verify()

        assert ROOT in str(exc_info.value)
        assert exc_info.value.root == ROOT
        assert exc_info.value.execution_error is original

    @pytest.mark.asyncio
    async def test_verify_no_jj_repo_message(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test jj's own 'no repo' wording maps to NotARepositoryError."""
        mock_runner.execute.side_effect = make_execution_error(
            'Error: There is no jj repo in "."'
        )

        with pytest.raises(NotARepositoryError):
            await repo.verify()

    @pytest.mark.asyncio
    async def test_verify_propagates_other_errors(
        self, repo: JjRepository, mock_runner
    ):
        """Test a missing binary propagates as the raw ExecutionError."""
        from jj_vcs.errors import FailureKind

        original = ExecutionError(
            "jj is not installed or not found in PATH",
            command="jj",
            args=["root"],
            kind=FailureKind.NOT_FOUND,
        )
        mock_runner.execute.side_effect = original

        with pytest.raises(ExecutionError) as exc_info:
            await repo.verify()

        assert exc_info.value is original


class TestStatus:
    """Test cases for status() and diff()."""

    @pytest.mark.asyncio
    async def test_status_returns_parsed_diff(self, repo: JjRepository, mock_runner):
        """Test status parses the diff summary and makes paths absolute."""
        mock_runner.execute.return_value = "D a.txt\nA b.txt\n"

        status = await repo.status()

        assert called_args(mock_runner.execute)[0] == "diff"
        assert [f.path for f in status.deleted] == [os.path.join(ROOT, "a.txt")]
        assert [f.path for f in status.added] == [os.path.join(ROOT, "b.txt")]
        assert status.modified == []
        assert status.moved == []

    @pytest.mark.asyncio
    async def test_status_nested_and_renamed_paths(
        self, repo: JjRepository, mock_runner
    ):
        """Test rename destinations are joined with the root."""
        mock_runner.execute.return_value = "R src/{old.ts => new.ts}\nM lib/x.py\n"

        status = await repo.status()

        assert [f.path for f in status.moved] == [os.path.join(ROOT, "src", "new.ts")]
        assert [f.path for f in status.modified] == [os.path.join(ROOT, "lib", "x.py")]

    @pytest.mark.asyncio
    async def test_status_keeps_absolute_paths(self, repo: JjRepository, mock_runner):
        """Test already absolute paths pass through unchanged."""
        absolute = os.path.abspath("/elsewhere/file.txt")
        mock_runner.execute.return_value = f"M {absolute}\n"

        status = await repo.status()

        assert [f.path for f in status.modified] == [absolute]

    @pytest.mark.asyncio
    async def test_status_empty(self, repo: JjRepository, mock_runner):
        """Test an empty diff gives an empty summary."""
        mock_runner.execute.return_value = ""

        status = await repo.status()

        assert status.is_empty

    @pytest.mark.asyncio
    async def test_status_throws_on_exec_failure(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test execution failures propagate from status."""
        mock_runner.execute.side_effect = make_execution_error("boom")

        with pytest.raises(ExecutionError):
            await repo.status()

    @pytest.mark.asyncio
    async def test_diff_returns_raw_text(self, repo: JjRepository, mock_runner):
        """Test diff returns the summary text untouched."""
        mock_runner.execute.return_value = "M a.txt\nR {x => y}\n"

        assert await repo.diff() == "M a.txt\nR {x => y}\n"
        assert called_args(mock_runner.execute) == ["diff", "--summary", "--no-pager"]


class TestCommit:
    """Test cases for commit()."""

    @pytest.mark.asyncio
    async def test_commit_succeeds(self, repo: JjRepository, mock_runner):
        """Test a commit passes the message to jj."""
        await repo.commit("Add feature")

        mock_runner.execute.assert_awaited_once()
        assert called_args(mock_runner.execute) == ["commit", "--message=Add feature"]

    @pytest.mark.asyncio
    async def test_commit_message_starting_with_dash(
        self, repo: JjRepository, mock_runner
    ):
        """Test a message that looks like a flag stays a single argument."""
        await repo.commit("-v is now verbose")

        assert called_args(mock_runner.execute) == [
            "commit",
            "--message=-v is now verbose",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", "\n\t"])
    async def test_commit_requires_message(
        self, repo: JjRepository, mock_runner, message
    ):
        """Test empty messages fail locally without spawning a process."""
        with pytest.raises(ValidationError, match="Commit message cannot be empty"):
            await repo.commit(message)

        mock_runner.execute.assert_not_called()
        mock_runner.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_reports_nothing_to_commit(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test 'nothing to commit' maps to NothingToCommitError."""
        mock_runner.execute.side_effect = make_execution_error("nothing to commit")

        with pytest.raises(NothingToCommitError, match="Nothing to commit"):
            await repo.commit("msg")

    @pytest.mark.asyncio
    async def test_commit_propagates_other_errors(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test unmapped failures propagate raw."""
        original = make_execution_error("Error: disk full")
        mock_runner.execute.side_effect = original

        with pytest.raises(ExecutionError) as exc_info:
            await repo.commit("msg")

        assert exc_info.value is original


class TestLog:
    """Test cases for log()."""

    @pytest.mark.asyncio
    async def test_log_returns_history(self, repo: JjRepository, mock_runner):
        """Test each non-empty line becomes one entry."""
        mock_runner.execute.return_value = "first\nsecond\n\n"

        assert await repo.log() == ["first", "second"]

    @pytest.mark.asyncio
    async def test_log_default_limit(self, repo: JjRepository, mock_runner):
        """Test the default limit of 20 is passed to jj."""
        mock_runner.execute.return_value = ""

        await repo.log()

        args = called_args(mock_runner.execute)
        assert args[0] == "log"
        assert args[args.index("-n") + 1] == "20"
        assert args[args.index("-r") + 1] == "::@"
        assert "--no-graph" in args

    @pytest.mark.asyncio
    async def test_log_custom_limit(self, repo: JjRepository, mock_runner):
        """Test an explicit limit overrides the default."""
        mock_runner.execute.return_value = "only\n"

        await repo.log(5)

        args = called_args(mock_runner.execute)
        assert args[args.index("-n") + 1] == "5"

    @pytest.mark.asyncio
    async def test_log_non_positive_limit(self, repo: JjRepository, mock_runner):
        """Test a zero limit returns nothing without spawning."""
        assert await repo.log(0) == []
        mock_runner.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_log_swallows_errors(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test any failure degrades to an empty list."""
        mock_runner.execute.side_effect = make_execution_error("bad")

        history = await repo.log()

        assert history == []
        assert get_error_tracker().get_error_stats()["total_errors"] == 1

    @pytest.mark.asyncio
    async def test_log_fallback_is_fresh_list(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test callers cannot mutate a shared fallback value."""
        mock_runner.execute.side_effect = make_execution_error("bad")

        first = await repo.log()
        first.append("mutated")
        second = await repo.log()

        assert second == []


class TestListBranches:
    """Test cases for list_branches()."""

    @pytest.mark.asyncio
    async def test_returns_bookmark_list(
        self, repo: JjRepository, mock_runner, make_process_result
    ):
        """Test bookmark names are trimmed and blanks dropped."""
        mock_runner.run.return_value = make_process_result("main\n  feature  \n\n")

        assert await repo.list_branches() == ["main", "feature"]
        assert called_args(mock_runner.run)[:2] == ["bookmark", "list"]

    @pytest.mark.asyncio
    async def test_falls_back_to_branch_list(
        self, repo: JjRepository, mock_runner, make_execution_error, make_process_result
    ):
        """Test the legacy command runs when bookmark is unknown."""
        mock_runner.run.side_effect = [
            make_execution_error("error: unrecognized subcommand 'bookmark'"),
            make_process_result("trunk\n"),
        ]

        assert await repo.list_branches() == ["trunk"]
        assert called_args(mock_runner.run, 1)[:2] == ["branch", "list"]

    @pytest.mark.asyncio
    async def test_throws_primary_error_when_both_fail(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test the primary error is raised when the fallback also fails."""
        primary = make_execution_error("unrecognized subcommand", exit_code=1)
        fallback = make_execution_error("boom", exit_code=2)
        mock_runner.run.side_effect = [primary, fallback]

        with pytest.raises(ExecutionError) as exc_info:
            await repo.list_branches()

        assert exc_info.value is primary
        assert exc_info.value.exit_code == 1

    @pytest.mark.asyncio
    async def test_no_fallback_for_other_errors(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test unrelated failures do not trigger the fallback."""
        original = make_execution_error("Error: Permission denied")
        mock_runner.run.side_effect = original

        with pytest.raises(ExecutionError) as exc_info:
            await repo.list_branches()

        assert exc_info.value is original
        assert mock_runner.run.await_count == 1


class TestMergeBranch:
    """Test cases for merge_branch()."""

    @pytest.mark.asyncio
    async def test_merge_succeeds(self, repo: JjRepository, mock_runner):
        """Test merge creates a new change on both parents."""
        await repo.merge_branch("feature")

        mock_runner.execute.assert_awaited_once()
        args = called_args(mock_runner.execute)
        assert args[0] == "new"
        assert args[-2:] == ["feature", "@"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "  "])
    async def test_merge_requires_name(self, repo: JjRepository, mock_runner, name):
        """Test empty branch names fail without spawning."""
        with pytest.raises(ValidationError, match="Branch name cannot be empty"):
            await repo.merge_branch(name)

        mock_runner.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_merge_handles_missing_branch(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test 'No such revset' maps to BranchNotFoundError."""
        mock_runner.execute.side_effect = make_execution_error(
            'Error: Revision "other" doesn\'t exist: No such revset'
        )

        with pytest.raises(BranchNotFoundError, match="does not exist") as exc_info:
            await repo.merge_branch("other")

        assert "other" in str(exc_info.value)
        assert exc_info.value.branch == "other"

    @pytest.mark.asyncio
    async def test_merge_handles_concurrent_modification(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test concurrent modification asks the caller to refresh and retry."""
        mock_runner.execute.side_effect = make_execution_error("Concurrent modification")

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await repo.merge_branch("dev")

        message = str(exc_info.value)
        assert "another process" in message
        assert "refresh" in message
        assert "try again" in message
        assert isinstance(exc_info.value, DomainError)

    @pytest.mark.asyncio
    async def test_merge_rethrows_other_errors(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test unmapped failures propagate raw."""
        mock_runner.execute.side_effect = make_execution_error("boom")

        with pytest.raises(ExecutionError):
            await repo.merge_branch("dev")


class TestPreviousFileContent:
    """Test cases for get_previous_file_content()."""

    @pytest.mark.asyncio
    async def test_returns_full_content(
        self, repo: JjRepository, mock_runner, make_process_result
    ):
        """Test file content is returned without trimming."""
        mock_runner.run.return_value = make_process_result("line 1\nline 2\n")

        content = await repo.get_previous_file_content("src/app.py")

        assert content == "line 1\nline 2\n"
        args = called_args(mock_runner.run)
        assert args[:2] == ["file", "show"]
        assert args[args.index("-r") + 1] == "@-"
        assert args[-1] == 'root-file:"src/app.py"'

    @pytest.mark.asyncio
    async def test_absolute_path_is_made_relative(
        self, repo: JjRepository, mock_runner, make_process_result
    ):
        """Test absolute paths inside the root are relativized."""
        mock_runner.run.return_value = make_process_result("x")

        await repo.get_previous_file_content(os.path.join(ROOT, "docs", "a b.md"))

        assert called_args(mock_runner.run)[-1] == 'root-file:"docs/a b.md"'

    @pytest.mark.asyncio
    async def test_quotes_are_escaped(
        self, repo: JjRepository, mock_runner, make_process_result
    ):
        """Test double quotes in paths are escaped in the fileset."""
        mock_runner.run.return_value = make_process_result("x")

        await repo.get_previous_file_content('say "hi".txt')

        assert called_args(mock_runner.run)[-1] == 'root-file:"say \\"hi\\".txt"'

    @pytest.mark.asyncio
    async def test_path_outside_root(self, repo: JjRepository, mock_runner):
        """Test absolute paths outside the root are rejected."""
        with pytest.raises(ValidationError):
            await repo.get_previous_file_content(os.path.abspath("/other/file.txt"))

        mock_runner.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_path(self, repo: JjRepository, mock_runner):
        """Test an empty path fails locally."""
        with pytest.raises(ValidationError):
            await repo.get_previous_file_content(" ")

    @pytest.mark.asyncio
    async def test_missing_file_raises(
        self, repo: JjRepository, mock_runner, make_execution_error
    ):
        """Test a path absent from the parent revision raises."""
        mock_runner.run.side_effect = make_execution_error("Error: No such path: new.txt")

        with pytest.raises(ExecutionError):
            await repo.get_previous_file_content("new.txt")

    @pytest.mark.asyncio
    async def test_no_matching_entries_warning_raises(
        self, repo: JjRepository, mock_runner, make_process_result
    ):
        """Test a zero exit with a no-match warning is still a failure."""
        mock_runner.run.return_value = make_process_result(
            "", "Warning: No matching entries for paths: new.txt\n"
        )

        with pytest.raises(ExecutionError, match="does not exist"):
            await repo.get_previous_file_content("new.txt")

    @pytest.mark.asyncio
    async def test_falls_back_to_cat(
        self, repo: JjRepository, mock_runner, make_execution_error, make_process_result
    ):
        """Test older jj versions use the cat subcommand."""
        mock_runner.run.side_effect = [
            make_execution_error("error: unrecognized subcommand 'file'"),
            make_process_result("old content"),
        ]

        assert await repo.get_previous_file_content("a.txt") == "old content"
        assert called_args(mock_runner.run, 1)[0] == "cat"
