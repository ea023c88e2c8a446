"""
Unified diff parser.

Turns the text produced by ``git diff`` (or ``git diff --cached``) into
DiffFile objects whose lines carry a per-file stable id. Every hunk starts with
a synthetic hunk-header line so the header text is addressable like any other
row.
"""

import re
from typing import List, Optional, Tuple

from reviewbridge.core.logging_config import get_logger
from reviewbridge.models.diff import DiffFile, DiffHunk, DiffLine, LineKind

logger = get_logger(__name__)

DEV_NULL = "/dev/null"

# e.g. @@ -1,13 +1,15 @@ def main():
HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def _strip_path(raw: str) -> str:
    """Remove quoting, a trailing timestamp and the a/ or b/ prefix from a header path."""
    path = raw.strip()
    if "\t" in path:
        path = path.split("\t", 1)[0]
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        path = path[1:-1]
    if path == DEV_NULL:
        return path
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


def _paths_from_git_header(header: str) -> Tuple[str, str]:
    # header is "a/<old> b/<new>"; split on the last " b/" like the paths appear
    idx = header.rfind(" b/")
    if idx == -1:
        return "", ""
    return _strip_path(header[:idx]), _strip_path(header[idx + 1 :])


class _FileBuilder:
    """Accumulates one file section while the parser walks the text."""

    def __init__(self, old_path: str = "", new_path: str = ""):
        self.old_path = old_path
        self.new_path = new_path
        self.hunks: List[DiffHunk] = []
        self.additions = 0
        self.deletions = 0
        self.next_id = 0

    def start_hunk(self, header: str) -> DiffHunk:
        hunk = DiffHunk(header=header)
        hunk.lines.append(
            DiffLine(stable_id=self.next_id, kind=LineKind.HUNK_HEADER, content=header)
        )
        self.next_id += 1
        self.hunks.append(hunk)
        return hunk

    def add_line(
        self,
        hunk: DiffHunk,
        kind: LineKind,
        content: str,
        old_line: Optional[int],
        new_line: Optional[int],
    ) -> None:
        hunk.lines.append(
            DiffLine(
                stable_id=self.next_id,
                old_line_number=old_line,
                new_line_number=new_line,
                kind=kind,
                content=content,
            )
        )
        self.next_id += 1
        if kind is LineKind.ADDED:
            self.additions += 1
        elif kind is LineKind.REMOVED:
            self.deletions += 1

    def build(self, staged: bool) -> DiffFile:
        old_path = "" if self.old_path == DEV_NULL else self.old_path
        if self.new_path and self.new_path != DEV_NULL:
            file_path = self.new_path
        else:
            file_path = old_path
        return DiffFile(
            file_path=file_path,
            old_file_path=old_path,
            hunks=self.hunks,
            additions=self.additions,
            deletions=self.deletions,
            staged=staged,
        )


def parse_diff(diff_text: str, staged: bool = False) -> List[DiffFile]:
    """
    Parse unified diff text into DiffFile objects.

    Args:
        diff_text: Output of a single ``git diff`` invocation
        staged: Whether the text came from the index-vs-HEAD comparison

    Returns:
        List[DiffFile]: Files in the order they appear in the text
    """
    files: List[DiffFile] = []
    current: Optional[_FileBuilder] = None
    hunk: Optional[DiffHunk] = None
    old_remaining = new_remaining = 0
    old_line = new_line = 0

    def finish() -> None:
        if current is not None:
            files.append(current.build(staged))

    lines = diff_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for raw_line in lines:
        in_hunk = hunk is not None and (old_remaining > 0 or new_remaining > 0)

        if in_hunk:
            marker = raw_line[:1]
            if marker == "+":
                current.add_line(hunk, LineKind.ADDED, raw_line, None, new_line)
                new_line += 1
                new_remaining -= 1
                continue
            if marker == "-":
                current.add_line(hunk, LineKind.REMOVED, raw_line, old_line, None)
                old_line += 1
                old_remaining -= 1
                continue
            if marker == " " or raw_line == "":
                # git may emit an empty string for a blank context line
                content = raw_line if raw_line else " "
                current.add_line(hunk, LineKind.CONTEXT, content, old_line, new_line)
                old_line += 1
                new_line += 1
                old_remaining -= 1
                new_remaining -= 1
                continue
            if marker == "\\":
                continue
            logger.warning(
                f"Hunk ended early in {current.new_path or current.old_path}: "
                f"{old_remaining} old / {new_remaining} new lines missing"
            )
            hunk = None
            old_remaining = new_remaining = 0

        if raw_line.startswith("diff --git "):
            finish()
            old_path, new_path = _paths_from_git_header(raw_line[len("diff --git ") :])
            current = _FileBuilder(old_path, new_path)
            hunk = None
            continue

        if raw_line.startswith("--- "):
            # Plain patches have no "diff --git" line; the old-file header opens the file
            if current is None or current.hunks:
                finish()
                current = _FileBuilder()
                hunk = None
            current.old_path = _strip_path(raw_line[4:])
            continue

        if current is None:
            continue

        if raw_line.startswith("+++ "):
            current.new_path = _strip_path(raw_line[4:])
        elif raw_line.startswith("rename from "):
            current.old_path = raw_line[len("rename from ") :]
        elif raw_line.startswith("rename to "):
            current.new_path = raw_line[len("rename to ") :]
        elif raw_line.startswith("@@"):
            match = HUNK_HEADER_RE.match(raw_line)
            if match is None:
                logger.warning(f"Skipping malformed hunk header: {raw_line!r}")
                hunk = None
                continue
            old_start, old_count, new_start, new_count = match.groups()
            old_line = int(old_start)
            new_line = int(new_start)
            old_remaining = int(old_count) if old_count is not None else 1
            new_remaining = int(new_count) if new_count is not None else 1
            hunk = current.start_hunk(raw_line)
        elif raw_line.startswith("\\"):
            continue

    finish()
    logger.debug(f"Parsed {len(files)} file(s) from {'staged' if staged else 'unstaged'} diff")
    return files
