"""
Parsing of `jj diff --summary` output.

Each data line has the form ``<code> <path>`` where the code is one of
A, D, M or R. Renames use either ``old => new`` or the partial form
``prefix{old => new}suffix``.
"""

import re
from typing import Dict, Optional

from ..models.status import ChangeKind, StatusSummary
from ..utils.logging import get_logger

logger = get_logger("status.parser")

STATUS_CODES: Dict[str, ChangeKind] = {
    "A": ChangeKind.ADDED,
    "D": ChangeKind.DELETED,
    "M": ChangeKind.MODIFIED,
    "R": ChangeKind.MOVED,
}

RENAME_ARROW = "=>"

_LINE_SPLIT = re.compile(r"\r\n|\r|\n")


def extract_new_path_from_rename(raw_path: str) -> str:
    """
    Return the destination path of a rename entry.

    ``src/{a.ts => b.ts}`` gives ``src/b.ts`` and ``a.ts => b.ts`` gives
    ``b.ts``. Inputs that do not follow either form, or whose destination
    would be empty, are returned unchanged.
    """
    start = raw_path.find("{")
    end = raw_path.find("}", start + 1) if start != -1 else -1

    if start == -1 or end == -1:
        arrow = raw_path.find(RENAME_ARROW)
        if arrow == -1:
            return raw_path
        new_path = raw_path[arrow + len(RENAME_ARROW):].strip()
    else:
        inner = raw_path[start + 1:end]
        arrow = inner.find(RENAME_ARROW)
        if arrow == -1:
            return raw_path
        new_part = inner[arrow + len(RENAME_ARROW):].strip()
        new_path = f"{raw_path[:start]}{new_part}{raw_path[end + 1:]}"

    return new_path or raw_path


class StatusParser:
    """Converts change-summary text into a StatusSummary."""

    def __init__(self, tool_name: str = "jj"):
        """
        Args:
            tool_name: Name of the tool whose echoed invocations are skipped
        """
        self.tool_name = tool_name
        self._echo_prefix = f"{tool_name} "

    def parse(self, raw_text: Optional[str]) -> StatusSummary:
        """
        Parse summary output. Never raises.

        Unknown status codes are skipped; a bare code with no path yields an
        entry with an empty path.
        """
        summary = StatusSummary()
        if not raw_text:
            return summary

        for raw_line in _LINE_SPLIT.split(raw_text):
            line = raw_line.strip()
            if not line or line.startswith(self._echo_prefix):
                continue

            code = line[0]
            rest = line[1:].strip()

            kind = STATUS_CODES.get(code)
            if kind is None:
                logger.debug("Ignoring unknown status code", extra={"line": line})
                continue

            if kind is ChangeKind.MOVED:
                rest = extract_new_path_from_rename(rest)

            summary.add(rest, kind)

        return summary


_default_parser = StatusParser()


def parse_status_output(raw_text: Optional[str]) -> StatusSummary:
    """Parse summary output with the default ``jj`` parser."""
    return _default_parser.parse(raw_text)
