"""
Synchronization between the UI and the MCP sessions.

The coordinator listens to the comment store and fans every change out to two
kinds of recipients:

- UI subscribers, one bounded asyncio.Queue per connected event stream. They
  receive the event itself, but only for changes the UI did not make.
- MCP sessions, which receive a ``notifications/resources/updated`` signal for
  ``comments://all`` and re-read the resource.

Delivery is best effort and isolated per recipient: a full queue or a broken
session never stops the others from being notified.
"""

import asyncio
from typing import Dict, List, Optional, Protocol, Set

import anyio
from pydantic import AnyUrl

from reviewbridge.core.logging_config import get_logger
from reviewbridge.models.comment import Origin
from reviewbridge.models.events import CommentEvent

logger = get_logger(__name__)

COMMENTS_RESOURCE_URI = "comments://all"

# A session whose transport raises these is gone for good
_CLOSED_TRANSPORT_ERRORS = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    ConnectionError,
)


class NotificationSession(Protocol):
    """The part of ``mcp.server.session.ServerSession`` the coordinator uses."""

    async def send_resource_updated(self, uri: AnyUrl) -> None: ...


class SyncCoordinator:
    def __init__(self, queue_size: int = 256):
        self._queue_size = queue_size
        self._ui_queues: Set[asyncio.Queue] = set()
        self._sessions: Dict[str, NotificationSession] = {}
        self._pending: Set[asyncio.Task] = set()

    # UI side

    def subscribe_ui(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._ui_queues.add(queue)
        logger.info(f"UI subscriber connected ({len(self._ui_queues)} active)")
        return queue

    def unsubscribe_ui(self, queue: asyncio.Queue) -> None:
        self._ui_queues.discard(queue)
        logger.info(f"UI subscriber disconnected ({len(self._ui_queues)} active)")

    @property
    def ui_subscriber_count(self) -> int:
        return len(self._ui_queues)

    # Protocol side

    def register_session(self, session_id: str, session: NotificationSession) -> None:
        if self._sessions.get(session_id) is session:
            return
        self._sessions[session_id] = session
        logger.info(f"MCP session {session_id} registered ({len(self._sessions)} active)")

    def retire_session(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info(f"MCP session {session_id} retired ({len(self._sessions)} active)")

    @property
    def session_ids(self) -> List[str]:
        return list(self._sessions)

    # Fan-out

    def publish(self, event: CommentEvent) -> None:
        """Store listener: push ``event`` to the UI and signal every MCP session."""
        if event.origin is not Origin.UI:
            self._push_to_ui(event)
        self._schedule_session_broadcast()

    def _push_to_ui(self, event: CommentEvent) -> None:
        for queue in list(self._ui_queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"UI subscriber queue full, dropping {event.kind} event")

    def _schedule_session_broadcast(self) -> None:
        if not self._sessions:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; MCP sessions were not notified")
            return
        task = loop.create_task(self.broadcast_resource_updated())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def broadcast_resource_updated(self) -> None:
        """Send the comments resource update to every session, one result per session."""
        targets = list(self._sessions.items())
        if not targets:
            return
        uri = AnyUrl(COMMENTS_RESOURCE_URI)
        results = await asyncio.gather(
            *(session.send_resource_updated(uri) for _, session in targets),
            return_exceptions=True,
        )
        for (session_id, session), result in zip(targets, results):
            if not isinstance(result, BaseException):
                continue
            if isinstance(result, _CLOSED_TRANSPORT_ERRORS):
                # Only drop the session we actually tried; it may have been re-registered
                if self._sessions.get(session_id) is session:
                    self.retire_session(session_id)
            else:
                logger.warning(f"Failed to notify MCP session {session_id}: {result!r}")

    async def drain(self) -> None:
        """Wait for every scheduled session broadcast to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._sessions.clear()
        self._ui_queues.clear()


def session_key(session: object, session_id: Optional[str]) -> str:
    """Key a session by its negotiated id, or by identity for transports without one."""
    return session_id or f"session-{id(session):x}"
