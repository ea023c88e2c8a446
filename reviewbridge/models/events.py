"""Comment change events fanned out by the sync coordinator."""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field

from reviewbridge.models.comment import Comment, Origin


class CommentAdded(BaseModel):
    kind: Literal["comment-added"] = "comment-added"
    origin: Origin
    comment: Comment


class CommentUpdated(BaseModel):
    kind: Literal["comment-updated"] = "comment-updated"
    origin: Origin
    id: str
    text: str


class CommentDeleted(BaseModel):
    kind: Literal["comment-deleted"] = "comment-deleted"
    origin: Origin
    id: str


class CommentOutdated(BaseModel):
    kind: Literal["comment-outdated"] = "comment-outdated"
    origin: Origin
    id: str
    file_path: str
    anchor_line: int


class CommentsReplaced(BaseModel):
    kind: Literal["comments-replaced"] = "comments-replaced"
    origin: Origin
    comments: List[Comment]


CommentEvent = Annotated[
    Union[CommentAdded, CommentUpdated, CommentDeleted, CommentOutdated, CommentsReplaced],
    Field(discriminator="kind"),
]
