"""
Comment endpoints used by the review UI.

UI mutations go straight to the comment store with origin ``ui``; the sync
coordinator then tells every MCP session to re-read ``comments://all``.
Changes made by agents reach the UI through the ``/events`` stream.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sse_starlette.sse import EventSourceResponse

from reviewbridge.api.dependencies import get_review_service
from reviewbridge.core.logging_config import get_logger
from reviewbridge.models.comment import Comment
from reviewbridge.models.requests import CommentTextBody, NewCommentBody, ReplaceCommentsBody
from reviewbridge.services.review_service import ReviewService

router = APIRouter()
logger = get_logger(__name__)

# Seconds between disconnect checks while no event is pending
EVENT_POLL_INTERVAL = 1.0


@router.get("/comments")
async def list_comments(
    file_path: Optional[str] = None, service: ReviewService = Depends(get_review_service)
):
    """Comments with their stable anchors and resolved line numbers, in file and line order."""
    return service.comment_rows(file_path)


@router.post("/comments", response_model=Comment, status_code=201)
async def add_comment(body: NewCommentBody, service: ReviewService = Depends(get_review_service)):
    return service.add_comment(body.file_path, body.anchor_line, body.text, staged=body.staged)


@router.put("/comments")
async def replace_comments(
    body: ReplaceCommentsBody, service: ReviewService = Depends(get_review_service)
):
    """Replace the whole comment set with the UI's copy."""
    return service.replace_comments(body.comments)


@router.patch("/comments/{comment_id}", response_model=Comment)
async def update_comment(
    comment_id: str, body: CommentTextBody, service: ReviewService = Depends(get_review_service)
):
    return service.update_comment(comment_id, body.text)


@router.delete("/comments/{comment_id}", response_model=Comment)
async def delete_comment(comment_id: str, service: ReviewService = Depends(get_review_service)):
    return service.delete_comment(comment_id)


@router.get("/review/export", response_class=PlainTextResponse)
async def export_review(service: ReviewService = Depends(get_review_service)):
    """The whole review as text, ready to be copied to the clipboard."""
    return service.export_review()


@router.get("/events")
async def comment_events(request: Request, service: ReviewService = Depends(get_review_service)):
    """Server-Sent Events stream of comment changes made by agents or by a refresh."""
    coordinator = service.coordinator
    queue = coordinator.subscribe_ui()

    async def event_generator():
        try:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=EVENT_POLL_INTERVAL)
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    continue
                yield {"event": event.kind, "data": event.model_dump_json()}
        finally:
            coordinator.unsubscribe_ui(queue)

    return EventSourceResponse(event_generator())
