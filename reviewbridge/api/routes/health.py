"""
Health check endpoints.

These endpoints provide basic health and status information about the API.
"""

from fastapi import APIRouter, Depends

from reviewbridge import __version__
from reviewbridge.api.dependencies import get_review_service
from reviewbridge.core.config import Settings, get_settings
from reviewbridge.services.review_service import ReviewService

router = APIRouter()


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_settings),
    service: ReviewService = Depends(get_review_service),
):
    """
    Simple health check endpoint.

    Returns the version, environment, open repository and connected clients.
    """
    return {
        "status": "healthy",
        "message": "Review bridge is running.",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "repository": service.root_path,
        "mcp_sessions": len(service.coordinator.session_ids),
        "ui_subscribers": service.coordinator.ui_subscriber_count,
    }
