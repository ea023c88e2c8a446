"""
Authoritative in-memory comment store.

Comments are keyed by ``(file_path, anchor_line)``, so at most one comment can
sit on a given file line: adding a second one to the same anchor replaces the
first. Every operation runs to completion without awaiting, which keeps them
atomic on the event loop without locks.

Callers only ever receive copies. Mutations notify the registered listeners
(the sync coordinator) after they are applied.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from reviewbridge.core.exceptions import CommentNotFoundError
from reviewbridge.core.logging_config import get_logger
from reviewbridge.models.comment import Comment, Origin
from reviewbridge.models.events import (
    CommentAdded,
    CommentDeleted,
    CommentEvent,
    CommentOutdated,
    CommentsReplaced,
    CommentUpdated,
)

logger = get_logger(__name__)

CommentKey = Tuple[str, int]
CommentListener = Callable[[CommentEvent], None]


class CommentStore:
    def __init__(self):
        self._comments: Dict[CommentKey, Comment] = {}
        self._listeners: List[CommentListener] = []

    def subscribe(self, listener: CommentListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: CommentListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: CommentEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Comment listener failed on {event.kind}")

    def _find_key(self, comment_id: str) -> CommentKey:
        for key, comment in self._comments.items():
            if comment.id == comment_id:
                return key
        raise CommentNotFoundError(comment_id)

    def __len__(self) -> int:
        return len(self._comments)

    def get(self, comment_id: str) -> Comment:
        return self._comments[self._find_key(comment_id)].model_copy()

    def list(self, file_path: Optional[str] = None) -> List[Comment]:
        """Return copies of all comments, optionally for one file, in no particular order."""
        return [
            comment.model_copy()
            for comment in self._comments.values()
            if file_path is None or comment.file_path == file_path
        ]

    def add(self, comment: Comment, origin: Origin = Origin.UI) -> Comment:
        """
        Store a comment at its ``(file_path, anchor_line)`` key.

        An existing comment at the same key is replaced (last write wins).

        Returns:
            Comment: A copy of the stored comment
        """
        stored = comment.model_copy()
        key = (stored.file_path, stored.anchor_line)
        replaced = self._comments.get(key)
        self._comments[key] = stored
        if replaced is not None and replaced.id != stored.id:
            logger.debug(f"Comment {replaced.id} at {key} replaced by {stored.id}")
        else:
            logger.debug(f"Comment {stored.id} added at {key}")
        self._emit(CommentAdded(origin=origin, comment=stored.model_copy()))
        return stored.model_copy()

    def update(self, comment_id: str, text: str, origin: Origin = Origin.UI) -> Comment:
        """Replace a comment's text; raises CommentNotFoundError for unknown ids."""
        key = self._find_key(comment_id)
        comment = self._comments[key]
        comment.text = text
        self._emit(CommentUpdated(origin=origin, id=comment_id, text=text))
        return comment.model_copy()

    def delete(self, comment_id: str, origin: Origin = Origin.UI) -> Comment:
        """Remove a comment; raises CommentNotFoundError for unknown or already deleted ids."""
        key = self._find_key(comment_id)
        removed = self._comments.pop(key)
        logger.debug(f"Comment {comment_id} deleted from {key}")
        self._emit(CommentDeleted(origin=origin, id=comment_id))
        return removed

    def mark_outdated(
        self, file_path: str, anchor_line: int, origin: Origin = Origin.SYSTEM
    ) -> bool:
        """
        Flag the comment at a key as outdated.

        Returns:
            bool: True if a comment changed, False if none was there or it was
            already outdated
        """
        comment = self._comments.get((file_path, anchor_line))
        if comment is None or comment.outdated:
            return False
        comment.outdated = True
        self._emit(
            CommentOutdated(
                origin=origin,
                id=comment.id,
                file_path=file_path,
                anchor_line=anchor_line,
            )
        )
        return True

    def replace_all(self, comments: Iterable[Comment], origin: Origin = Origin.UI) -> List[Comment]:
        """Swap the whole comment set; later entries win on key collisions."""
        self._comments = {}
        for comment in comments:
            stored = comment.model_copy()
            self._comments[(stored.file_path, stored.anchor_line)] = stored
        snapshot = self.list()
        logger.debug(f"Comment set replaced with {len(snapshot)} comment(s)")
        self._emit(CommentsReplaced(origin=origin, comments=snapshot))
        return self.list()
