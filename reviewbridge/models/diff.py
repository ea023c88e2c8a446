"""Diff snapshot models: files, hunks and addressable lines."""

from enum import Enum
from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field

FileKey = Tuple[str, bool]


class LineKind(str, Enum):
    HUNK_HEADER = "hunk-header"
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


class DiffLine(BaseModel):
    """One row of a rendered diff.

    ``stable_id`` is the per-file sequence number comments anchor to. Added
    lines only carry a new-side number, removed lines only an old-side number,
    context lines both and hunk headers neither.
    """

    stable_id: int
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None
    kind: LineKind
    content: str

    @property
    def line_ref(self) -> Optional[int]:
        """Real line number shown to humans and agents."""
        if self.new_line_number is not None:
            return self.new_line_number
        return self.old_line_number


class DiffHunk(BaseModel):
    header: str
    lines: List[DiffLine] = Field(default_factory=list)


class DiffFile(BaseModel):
    """One file's change set from either the staged or the unstaged comparison."""

    file_path: str
    old_file_path: str = ""
    hunks: List[DiffHunk] = Field(default_factory=list)
    additions: int = 0
    deletions: int = 0
    staged: bool = False

    @property
    def key(self) -> FileKey:
        return (self.file_path, self.staged)

    def iter_lines(self) -> Iterator[DiffLine]:
        for hunk in self.hunks:
            yield from hunk.lines
