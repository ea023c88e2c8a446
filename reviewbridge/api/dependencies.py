"""
Dependency injection module for FastAPI.

Route functions receive the settings and the application's ReviewService
through these dependencies, which keeps them easy to override in tests.
"""

from fastapi import Request

from reviewbridge.core.config import get_settings  # noqa: F401
from reviewbridge.services.review_service import ReviewService


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.review_service
