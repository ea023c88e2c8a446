"""
Reconciliation of stored comments against a freshly fetched diff snapshot.

A comment becomes outdated when its anchor line is missing from the diff entry
it resolves against: the side it was pinned to, or the unstaged entry first
and the staged one second when it carries no side. Outdated is sticky: a later
snapshot that happens to bring the same anchor back does not clear the flag,
since the anchored content cannot be proven to be the same line.
"""

from typing import List, Optional, Sequence

from reviewbridge.comments.store import CommentStore
from reviewbridge.core.logging_config import get_logger
from reviewbridge.diff.resolver import LineResolver
from reviewbridge.models.comment import Origin
from reviewbridge.models.diff import DiffFile, FileKey

logger = get_logger(__name__)


def reconcile(store: CommentStore, snapshot: Sequence[DiffFile]) -> List[str]:
    """
    Mark comments whose anchors no longer exist as outdated.

    Args:
        store: The comment store to reconcile
        snapshot: The new diff snapshot (staged and unstaged entries)

    Returns:
        List[str]: Ids of the comments newly marked outdated
    """
    resolver = LineResolver(snapshot)

    newly_outdated: List[str] = []
    for comment in store.list():
        if comment.outdated:
            continue
        if resolver.find_line(comment.file_path, comment.anchor_line, comment.staged) is None:
            if store.mark_outdated(comment.file_path, comment.anchor_line, origin=Origin.SYSTEM):
                newly_outdated.append(comment.id)

    if newly_outdated:
        logger.info(f"Marked {len(newly_outdated)} comment(s) outdated after refresh")
    return newly_outdated


def choose_selection(
    previous: Optional[FileKey], snapshot: Sequence[DiffFile]
) -> Optional[FileKey]:
    """Keep the previously selected file if it survived, else pick the first file."""
    if not snapshot:
        return None
    if previous is not None:
        if any(f.key == previous for f in snapshot):
            return previous
        # The file moved between the staged and unstaged lists
        same_path = next((f for f in snapshot if f.file_path == previous[0]), None)
        if same_path is not None:
            return same_path.key
    return snapshot[0].key
