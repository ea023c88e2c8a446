"""
Custom exceptions module.

Every application error carries the HTTP status code the UI API answers with,
so route handlers can raise them directly and let the registered exception
handler render them.
"""


class ReviewBridgeException(Exception):
    """Base exception class for all application-specific exceptions."""

    def __init__(
        self,
        message: str = "An error occurred in the review bridge",
        status_code: int = 500,
    ):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


# Repository Exceptions
class RepositoryError(ReviewBridgeException):
    """Raised when a diff cannot be produced for a repository root."""

    def __init__(self, root_path: str, reason: str):
        self.root_path = root_path
        self.reason = reason
        message = f"Cannot read repository {root_path}: {reason}"
        super().__init__(message, status_code=400)


class NoRepositoryError(ReviewBridgeException):
    """Raised when an operation needs a repository and none is open."""

    def __init__(self):
        super().__init__("No repository is open", status_code=409)


# Comment Exceptions
class CommentNotFoundError(ReviewBridgeException):
    """Raised when no stored comment has the requested id."""

    def __init__(self, comment_id: str):
        self.comment_id = comment_id
        super().__init__(f"Comment {comment_id} not found.", status_code=404)


class AnchorResolutionError(ReviewBridgeException):
    """Raised when a line reference does not resolve against the cached diff."""

    def __init__(self, file_path: str, line: int):
        self.file_path = file_path
        self.line = line
        message = (
            f"Line {line} not found in diff for {file_path}. "
            "Call get_diff first to refresh the cache."
        )
        super().__init__(message, status_code=422)
