"""
MCP server exposing the review to AI agents.

Tools, the ``comments://all`` resource and two prompts are registered on a
FastMCP instance bound to the shared ReviewService. Each tool builds the
matching tool-request model and hands it to ``ReviewService.handle_tool``.
A session joins the coordinator's notification fan-out on its first request
after initialization and leaves it when it unsubscribes from the resource or
its transport closes.
"""

import json
from typing import Annotated, Any, Awaitable, Callable, Dict, Optional

from mcp import types
from mcp.server.fastmcp import FastMCP
from mcp.server.lowlevel import NotificationOptions, Server
from pydantic import AnyUrl, Field

from reviewbridge.comments.sync import COMMENTS_RESOURCE_URI, SyncCoordinator, session_key
from reviewbridge.core.config import Settings
from reviewbridge.core.logging_config import get_logger
from reviewbridge.models.requests import (
    AddCommentRequest,
    DeleteCommentRequest,
    GetCommentsRequest,
    GetDiffRequest,
    UpdateCommentRequest,
)
from reviewbridge.services.review_service import ReviewService

logger = get_logger(__name__)

RequestHandler = Callable[[Any], Awaitable[types.ServerResult]]

INSTRUCTIONS = (
    "Review the working-tree changes of the repository open in the review UI. "
    "Call get_diff to see staged and unstaged changes; every line carries a "
    "line_ref (real file line number) to use with add_comment."
)


def _session_id(request_context) -> Optional[str]:
    request = getattr(request_context, "request", None)
    if request is None:
        return None
    return request.headers.get("mcp-session-id")


def create_mcp_server(service: ReviewService, settings: Settings) -> FastMCP:
    """
    Build the FastMCP server for one application instance.

    Args:
        service: The shared review state
        settings: Application settings (server name, endpoint path)

    Returns:
        FastMCP: Server ready to be served with ``streamable_http_app()``
    """
    mcp = FastMCP(
        settings.MCP_SERVER_NAME,
        instructions=INSTRUCTIONS,
        streamable_http_path=settings.MCP_PATH,
    )
    coordinator = service.coordinator

    # Tools

    @mcp.tool()
    async def get_diff(
        file_path: Annotated[
            Optional[str], Field(description="Only return this file (optional)")
        ] = None,
    ) -> str:
        """Get the staged and unstaged diff. Each line has a line_ref (real file line number)."""
        return await service.handle_tool(GetDiffRequest(file_path=file_path))

    @mcp.tool()
    async def get_comments(
        file_path: Annotated[
            Optional[str], Field(description="Filter to a specific file path (optional)")
        ] = None,
    ) -> str:
        """Get all comments currently in the review. Each comment includes its line_ref."""
        return await service.handle_tool(GetCommentsRequest(file_path=file_path))

    @mcp.tool()
    async def add_comment(
        file_path: Annotated[str, Field(description="The file path to comment on")],
        line_ref: Annotated[
            int, Field(description="The real file line number (line_ref from get_diff)")
        ],
        text: Annotated[str, Field(description="The comment text")],
        staged: Annotated[
            Optional[bool],
            Field(description="Comment on the staged (true) or unstaged (false) change; "
            "defaults to unstaged when the file has both"),
        ] = None,
    ) -> str:
        """Add a review comment to a specific line. Use line_ref values from get_diff."""
        return await service.handle_tool(
            AddCommentRequest(file_path=file_path, line_ref=line_ref, text=text, staged=staged)
        )

    @mcp.tool()
    async def update_comment(
        id: Annotated[str, Field(description="The comment ID to update")],
        text: Annotated[str, Field(description="The new comment text")],
    ) -> str:
        """Edit the text of an existing review comment."""
        return await service.handle_tool(UpdateCommentRequest(id=id, text=text))

    @mcp.tool()
    async def delete_comment(
        id: Annotated[str, Field(description="The comment ID to delete")],
    ) -> str:
        """Delete a review comment by its ID."""
        return await service.handle_tool(DeleteCommentRequest(id=id))

    # Resources

    @mcp.resource(
        COMMENTS_RESOURCE_URI,
        name="comments",
        description="All current review comments with line_ref (real file line numbers).",
        mime_type="application/json",
    )
    def all_comments() -> str:
        return json.dumps([v.model_dump() for v in service.comment_views()], indent=2)

    lowlevel = mcp._mcp_server

    @lowlevel.subscribe_resource()
    async def subscribe(uri: AnyUrl) -> None:
        logger.debug(f"Session subscribed to {uri}")

    @lowlevel.unsubscribe_resource()
    async def unsubscribe(uri: AnyUrl) -> None:
        ctx = lowlevel.request_context
        coordinator.retire_session(session_key(ctx.session, _session_id(ctx)))

    # Prompts

    @mcp.prompt()
    def review_file(file_path: str) -> str:
        """Review the changes of one file and leave line comments."""
        return (
            f"Review the changes to {file_path}. Call get_diff with file_path={file_path!r} "
            "and get_comments to see what has already been said. Leave a comment with "
            "add_comment for each bug, risky change or unclear piece of code, using the "
            "line_ref of the line it concerns."
        )

    @mcp.prompt()
    def summarize_review() -> str:
        """Summarize every comment left in the current review."""
        return (
            "Call get_comments and summarize the review: group the comments by file, "
            "point out the most important issues first and mention comments marked "
            "outdated separately, since the lines they were left on have changed."
        )

    _advertise_subscriptions(lowlevel)
    _join_fan_out_on_request(lowlevel, coordinator)

    return mcp


def _advertise_subscriptions(server: Server) -> None:
    """Report ``resources.subscribe``, which the low-level server always leaves False."""
    get_capabilities = server.get_capabilities

    def capabilities(
        notification_options: NotificationOptions,
        experimental_capabilities: Dict[str, Dict[str, Any]],
    ) -> types.ServerCapabilities:
        result = get_capabilities(notification_options, experimental_capabilities)
        if result.resources is not None:
            result.resources.subscribe = True
        return result

    server.get_capabilities = capabilities


def _join_fan_out_on_request(server: Server, coordinator: SyncCoordinator) -> None:
    """Register the calling session before every request handler but unsubscribe."""

    def wrap(handler: RequestHandler) -> RequestHandler:
        async def handle(request: Any) -> types.ServerResult:
            ctx = server.request_context
            coordinator.register_session(session_key(ctx.session, _session_id(ctx)), ctx.session)
            return await handler(request)

        return handle

    for request_type, handler in list(server.request_handlers.items()):
        if request_type is not types.UnsubscribeRequest:
            server.request_handlers[request_type] = wrap(handler)
