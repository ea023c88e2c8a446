"""
Translation between stable diff line ids and real file line numbers.

Comments anchor to stable ids, but humans and agents speak in real line
numbers, so every boundary crossing goes through a LineResolver built over the
current diff snapshot.

When the snapshot holds both a staged and an unstaged entry for the same path,
the unstaged entry is searched unless the caller names a side: it reflects the
working tree, which is the newest version of the file.
"""

from typing import Iterable, List, Optional

from reviewbridge.models.diff import DiffFile, DiffLine


class LineResolver:
    """Pure lookups over one diff snapshot."""

    def __init__(self, snapshot: Iterable[DiffFile]):
        self._files: List[DiffFile] = list(snapshot)

    def select_file(self, file_path: str, staged: Optional[bool] = None) -> Optional[DiffFile]:
        """
        Pick the diff entry lookups for ``file_path`` run against.

        Args:
            file_path: Current path of the file
            staged: Restrict to the staged (True) or unstaged (False) entry;
                None prefers unstaged and falls back to staged

        Returns:
            Optional[DiffFile]: The chosen entry, or None if the path is absent
        """
        candidates = [f for f in self._files if f.file_path == file_path]
        if staged is not None:
            return next((f for f in candidates if f.staged == staged), None)
        for candidate in candidates:
            if not candidate.staged:
                return candidate
        return candidates[0] if candidates else None

    def resolve_stable_id(
        self, file_path: str, real_line: int, staged: Optional[bool] = None
    ) -> Optional[int]:
        """Map a real line number to the stable id of the row it names."""
        diff_file = self.select_file(file_path, staged)
        if diff_file is None:
            return None

        lines = list(diff_file.iter_lines())
        for line in lines:
            if line.new_line_number == real_line:
                return line.stable_id
        # Old-side only rows (deletions) before context rows whose new number differs
        for line in lines:
            if line.old_line_number == real_line and line.new_line_number is None:
                return line.stable_id
        for line in lines:
            if line.old_line_number == real_line:
                return line.stable_id
        return None

    def resolve_real_line(
        self, file_path: str, stable_id: int, staged: Optional[bool] = None
    ) -> Optional[int]:
        """Map a stable id back to its new-side number, or old-side for deletions."""
        line = self.find_line(file_path, stable_id, staged)
        return line.line_ref if line is not None else None

    def find_line(
        self, file_path: str, stable_id: int, staged: Optional[bool] = None
    ) -> Optional[DiffLine]:
        diff_file = self.select_file(file_path, staged)
        if diff_file is None:
            return None
        for line in diff_file.iter_lines():
            if line.stable_id == stable_id:
                return line
        return None
