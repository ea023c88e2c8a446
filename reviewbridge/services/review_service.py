"""Review service module.

The ReviewService is the application state shared by the UI API and the MCP
server: the open repository, the cached diff snapshot, the UI file selection,
the comment store and the sync coordinator. One instance is created per
application and injected into both boundaries.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

from reviewbridge.comments.reconciler import choose_selection, reconcile
from reviewbridge.comments.store import CommentStore
from reviewbridge.comments.sync import SyncCoordinator
from reviewbridge.core.exceptions import (
    AnchorResolutionError,
    CommentNotFoundError,
    NoRepositoryError,
    RepositoryError,
)
from reviewbridge.core.logging_config import get_logger
from reviewbridge.diff.resolver import LineResolver
from reviewbridge.models.comment import Comment, CommentView, Origin
from reviewbridge.models.diff import DiffFile, FileKey
from reviewbridge.models.requests import (
    AddCommentRequest,
    DeleteCommentRequest,
    GetCommentsRequest,
    GetDiffRequest,
    ToolRequest,
    UpdateCommentRequest,
)
from reviewbridge.repo_manager import GitRepository, fetch_diff

logger = get_logger(__name__)


class ReviewService:
    def __init__(
        self,
        store: Optional[CommentStore] = None,
        coordinator: Optional[SyncCoordinator] = None,
    ):
        self.store = store or CommentStore()
        self.coordinator = coordinator or SyncCoordinator()
        self.store.subscribe(self.coordinator.publish)

        self.repository: Optional[GitRepository] = None
        self.snapshot: Optional[List[DiffFile]] = None
        self.selected: Optional[FileKey] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def root_path(self) -> Optional[str]:
        return self.repository.root_path if self.repository is not None else None

    def resolver(self) -> LineResolver:
        return LineResolver(self.snapshot or [])

    # Repository and snapshot

    async def open_repository(self, root_path: str) -> List[DiffFile]:
        """
        Switch to a new repository root and load its diff.

        Existing comments are kept; the refresh reconciles them against the new
        snapshot, which marks comments from another repository outdated.

        Raises:
            RepositoryError: If ``root_path`` is not a git working tree
        """
        logger.info(f"Opening repository {root_path}")
        self.snapshot = None
        self.selected = None
        try:
            repository = await asyncio.to_thread(GitRepository, root_path)
        except RepositoryError:
            self.repository = None
            raise
        self.repository = repository
        return await self.refresh()

    async def refresh(self) -> List[DiffFile]:
        """
        Fetch a fresh snapshot, reconcile comments and update the selection.

        Raises:
            NoRepositoryError: If no repository is open
            RepositoryError: If git cannot produce the diff; the snapshot and
                selection are cleared and comments are left untouched
        """
        if self.repository is None:
            raise NoRepositoryError()

        async with self._refresh_lock:
            repository = self.repository
            try:
                snapshot = await fetch_diff(repository)
            except RepositoryError:
                self.snapshot = None
                self.selected = None
                raise
            if repository is not self.repository:
                # Another repository was opened while git was running
                return self.snapshot or []

            self.snapshot = snapshot
            reconcile(self.store, snapshot)
            self.selected = choose_selection(self.selected, snapshot)

        logger.info(
            f"Refreshed {repository.root_path}: {len(snapshot)} file(s), "
            f"{len(self.store)} comment(s)"
        )
        return snapshot

    def select_file(self, file_path: str, staged: bool) -> Optional[FileKey]:
        key = (file_path, staged)
        if self.snapshot and any(f.key == key for f in self.snapshot):
            self.selected = key
        return self.selected

    async def stage(self, file_path: str) -> bool:
        return await self._change_index(file_path, stage=True)

    async def unstage(self, file_path: str) -> bool:
        return await self._change_index(file_path, stage=False)

    async def _change_index(self, file_path: str, stage: bool) -> bool:
        if self.repository is None:
            raise NoRepositoryError()
        operation = self.repository.stage if stage else self.repository.unstage
        ok = await asyncio.to_thread(operation, file_path)
        await self.refresh()
        return ok

    # Comments

    def comment_views(self, file_path: Optional[str] = None) -> List[CommentView]:
        """Comments with real line numbers, sorted by file then line."""
        resolver = self.resolver()
        views = [
            CommentView(
                id=comment.id,
                file_path=comment.file_path,
                line_ref=resolver.resolve_real_line(
                    comment.file_path, comment.anchor_line, comment.staged
                ),
                text=comment.text,
                outdated=comment.outdated,
            )
            for comment in self.store.list(file_path)
        ]
        views.sort(
            key=lambda v: (v.file_path, v.line_ref is None, v.line_ref or 0, v.id)
        )
        return views

    def comment_rows(self, file_path: Optional[str] = None) -> List[Dict[str, Any]]:
        """Stored comments with their line_ref, in the order of ``comment_views``."""
        comments = {c.id: c for c in self.store.list(file_path)}
        return [
            {**comments[view.id].model_dump(mode="json"), "line_ref": view.line_ref}
            for view in self.comment_views(file_path)
        ]

    def add_comment(
        self,
        file_path: str,
        anchor_line: int,
        text: str,
        staged: Optional[bool] = None,
        origin: Origin = Origin.UI,
    ) -> Comment:
        """Add a comment on a stable line id of the cached snapshot."""
        if self.resolver().find_line(file_path, anchor_line, staged) is None:
            raise AnchorResolutionError(file_path, anchor_line)
        comment = Comment(file_path=file_path, anchor_line=anchor_line, text=text, staged=staged)
        return self.store.add(comment, origin=origin)

    def update_comment(self, comment_id: str, text: str, origin: Origin = Origin.UI) -> Comment:
        return self.store.update(comment_id, text, origin=origin)

    def delete_comment(self, comment_id: str, origin: Origin = Origin.UI) -> Comment:
        return self.store.delete(comment_id, origin=origin)

    def replace_comments(self, comments: List[Comment]) -> List[Comment]:
        return self.store.replace_all(comments, origin=Origin.UI)

    def export_review(self) -> str:
        """Render every comment as ``path:line — "text"``, one per line."""
        rows = []
        for view in self.comment_views():
            prefix = "[OUTDATED] " if view.outdated else ""
            line = view.line_ref if view.line_ref is not None else "?"
            rows.append(f'{view.file_path}:{line} — "{prefix}{view.text}"')
        return "\n".join(rows)

    # MCP tools

    async def handle_tool(self, request: ToolRequest) -> str:
        """
        Run one MCP tool request and return its text payload.

        Unresolvable lines and unknown comment ids are answered with a
        descriptive message rather than an error, so agents can recover.

        Raises:
            RepositoryError: If ``get_diff`` cannot read the repository
        """
        match request:
            case GetDiffRequest(file_path=file_path):
                return await self._tool_get_diff(file_path)
            case GetCommentsRequest(file_path=file_path):
                views = self.comment_views(file_path)
                return json.dumps([v.model_dump() for v in views], indent=2)
            case AddCommentRequest(file_path=file_path, line_ref=line_ref, text=text, staged=staged):
                return self._tool_add_comment(file_path, line_ref, text, staged)
            case UpdateCommentRequest(id=comment_id, text=text):
                try:
                    self.update_comment(comment_id, text, origin=Origin.PROTOCOL)
                except CommentNotFoundError as e:
                    return e.message
                return json.dumps({"success": True})
            case DeleteCommentRequest(id=comment_id):
                try:
                    self.delete_comment(comment_id, origin=Origin.PROTOCOL)
                except CommentNotFoundError as e:
                    return e.message
                return json.dumps({"success": True})
            case _:
                raise TypeError(f"Unsupported tool request: {type(request).__name__}")

    async def _tool_get_diff(self, file_path: Optional[str]) -> str:
        if self.repository is None:
            return "No repository is open. Open a folder in the review UI first."
        snapshot = await self.refresh()
        files = [f for f in snapshot if file_path is None or f.file_path == file_path]
        return json.dumps([_serialize_file(f) for f in files], indent=2)

    def _tool_add_comment(
        self, file_path: str, line_ref: int, text: str, staged: Optional[bool]
    ) -> str:
        anchor = self.resolver().resolve_stable_id(file_path, line_ref, staged)
        if anchor is None:
            return AnchorResolutionError(file_path, line_ref).message
        comment = self.store.add(
            Comment(file_path=file_path, anchor_line=anchor, text=text, staged=staged),
            origin=Origin.PROTOCOL,
        )
        view = CommentView(
            id=comment.id,
            file_path=comment.file_path,
            line_ref=line_ref,
            text=comment.text,
            outdated=comment.outdated,
        )
        return json.dumps({"success": True, "comment": view.model_dump()})


def _serialize_file(diff_file: DiffFile) -> Dict[str, Any]:
    """Agent-facing shape of a diff file: real line refs, never stable ids."""
    return {
        "file_path": diff_file.file_path,
        "old_file_path": diff_file.old_file_path,
        "staged": diff_file.staged,
        "additions": diff_file.additions,
        "deletions": diff_file.deletions,
        "hunks": [
            {
                "header": hunk.header,
                "lines": [
                    {"line_ref": line.line_ref, "type": line.kind.value, "content": line.content}
                    for line in hunk.lines[1:]
                ],
            }
            for hunk in diff_file.hunks
        ],
    }
