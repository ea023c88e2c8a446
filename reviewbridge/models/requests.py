"""Request models for the MCP tools and the UI API."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from reviewbridge.models.comment import Comment


# MCP tool requests, one variant per tool
class GetDiffRequest(BaseModel):
    tool: Literal["get_diff"] = "get_diff"
    file_path: Optional[str] = None


class GetCommentsRequest(BaseModel):
    tool: Literal["get_comments"] = "get_comments"
    file_path: Optional[str] = None


class AddCommentRequest(BaseModel):
    tool: Literal["add_comment"] = "add_comment"
    file_path: str
    line_ref: int
    text: str
    staged: Optional[bool] = None


class UpdateCommentRequest(BaseModel):
    tool: Literal["update_comment"] = "update_comment"
    id: str
    text: str


class DeleteCommentRequest(BaseModel):
    tool: Literal["delete_comment"] = "delete_comment"
    id: str


ToolRequest = Annotated[
    Union[
        GetDiffRequest,
        GetCommentsRequest,
        AddCommentRequest,
        UpdateCommentRequest,
        DeleteCommentRequest,
    ],
    Field(discriminator="tool"),
]


# UI API bodies
class OpenRepositoryBody(BaseModel):
    root_path: str


class FilePathBody(BaseModel):
    file_path: str


class SelectionBody(BaseModel):
    file_path: str
    staged: bool = False


class NewCommentBody(BaseModel):
    file_path: str
    anchor_line: int
    text: str
    staged: Optional[bool] = None


class CommentTextBody(BaseModel):
    text: str


class ReplaceCommentsBody(BaseModel):
    comments: List[Comment]
