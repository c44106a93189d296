"""
Command line entry point for the jj VCS core.
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from .components.repository import is_repository_root
from .components.serialized_repository import create_repository
from .errors import JjVcsError
from .models.status import StatusSummary
from .services.config_manager import ConfigurationManager
from .utils.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jj-vcs",
        description="Inspect and update a jj working copy",
    )
    parser.add_argument("--config", help="Path to a YAML or JSON configuration file")
    parser.add_argument(
        "--repo", default=os.getcwd(), help="Working-copy root (default: cwd)"
    )
    parser.add_argument("--log-level", help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("verify", help="Check the repository is usable")
    subparsers.add_parser("status", help="List changed files")
    subparsers.add_parser("diff", help="Print the change summary")

    log_parser = subparsers.add_parser("log", help="Show recent descriptions")
    log_parser.add_argument("-n", "--limit", type=int, default=None)

    subparsers.add_parser("branches", help="List bookmarks")

    commit_parser = subparsers.add_parser("commit", help="Commit the working copy")
    commit_parser.add_argument("-m", "--message", required=True)

    merge_parser = subparsers.add_parser("merge", help="Merge a bookmark")
    merge_parser.add_argument("name")

    show_parser = subparsers.add_parser(
        "show", help="Print a file as of the previous revision"
    )
    show_parser.add_argument("path")

    return parser


def format_status(summary: StatusSummary) -> str:
    """One ``<kind> <path>`` line per change, in display order."""
    if summary.is_empty:
        return "No changes in working copy"
    lines = [f"{entry.kind.value:<9}{entry.path}" for entry in summary.all_files()]
    count = summary.total
    lines.append(f"{count} change{'' if count == 1 else 's'}")
    return "\n".join(lines)


async def run_command(args: argparse.Namespace) -> int:
    """Execute the parsed command and return the process exit code."""
    config = ConfigurationManager(args.config).load_config()
    if args.log_level:
        config.log_level = args.log_level
        config.validate()
    setup_logging(log_dir=config.log_dir, log_level=config.log_level)
    logger = get_logger("cli")

    if not is_repository_root(args.repo):
        print(f"Error: no .jj directory found in {args.repo}", file=sys.stderr)
        return 1

    repo = create_repository(config, args.repo)
    logger.debug("Running command", extra={"command": args.command, "repo": args.repo})

    if args.command == "verify":
        print(await repo.verify())
    elif args.command == "status":
        print(format_status(await repo.status()))
    elif args.command == "diff":
        output = await repo.diff()
        print(output.rstrip("\n") if output.strip() else "No changes in working copy")
    elif args.command == "log":
        history = await repo.log(args.limit)
        print("\n".join(history) if history else "No commit history found")
    elif args.command == "branches":
        branches = await repo.list_branches()
        print("\n".join(branches) if branches else "No branches found")
    elif args.command == "commit":
        await repo.commit(args.message)
        print("Changes committed successfully")
    elif args.command == "merge":
        await repo.merge_branch(args.name)
        print(f"Successfully merged branch {args.name}")
    elif args.command == "show":
        sys.stdout.write(await repo.get_previous_file_content(args.path))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(run_command(args))
    except (JjVcsError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
