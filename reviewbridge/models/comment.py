"""Comment models shared by the store, the UI API and the MCP tools."""

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _new_comment_id() -> str:
    return uuid.uuid4().hex


class Origin(str, Enum):
    """Which actor caused a comment mutation."""

    UI = "ui"
    PROTOCOL = "protocol"
    SYSTEM = "system"


class Comment(BaseModel):
    """A review comment anchored to a stable diff line id.

    ``staged`` records which diff entry the anchor was taken from when both a
    staged and an unstaged entry exist for the file. It scopes line resolution
    only and is not part of the storage key.
    """

    id: str = Field(default_factory=_new_comment_id)
    file_path: str
    anchor_line: int
    text: str
    outdated: bool = False
    staged: Optional[bool] = None


class CommentView(BaseModel):
    """Outward shape of a comment: real line number instead of the anchor."""

    id: str
    file_path: str
    line_ref: Optional[int] = None
    text: str
    outdated: bool
