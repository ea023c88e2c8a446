"""
API routes initialization.

This module aggregates all router modules into a single API router.
"""

from fastapi import APIRouter

from reviewbridge.api.routes.comments import router as comments_router
from reviewbridge.api.routes.health import router as health_router
from reviewbridge.api.routes.repository import router as repository_router

# Create the main API router and include all sub-routers
api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(repository_router, prefix="/api", tags=["repository"])
api_router.include_router(comments_router, prefix="/api", tags=["comments"])
