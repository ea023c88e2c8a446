"""
Main FastAPI application module.

One application serves both consumers of the review:
- the UI API under /api, with a Server-Sent Events push channel
- the MCP endpoint (Streamable HTTP) for AI agents, mounted at MCP_PATH

Both are bound to the same ReviewService instance created by the factory.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reviewbridge import __version__
from reviewbridge.api.mcp_server import create_mcp_server
from reviewbridge.api.routes import api_router
from reviewbridge.comments.store import CommentStore
from reviewbridge.comments.sync import SyncCoordinator
from reviewbridge.core.config import Settings, get_settings
from reviewbridge.core.exceptions import RepositoryError, ReviewBridgeException
from reviewbridge.core.logging_config import get_logger, setup_logging
from reviewbridge.services.review_service import ReviewService

logger = get_logger(__name__)


def create_application(
    settings: Optional[Settings] = None, service: Optional[ReviewService] = None
) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    Args:
        settings: Application settings; the cached settings when omitted
        service: Review state to serve; a fresh one when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = settings or get_settings()
    service = service or ReviewService(
        CommentStore(), SyncCoordinator(queue_size=settings.EVENT_QUEUE_SIZE)
    )

    mcp = create_mcp_server(service, settings)
    mcp_app = mcp.streamable_http_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting review bridge, MCP endpoint at {settings.MCP_PATH}")
        async with mcp.session_manager.run():
            if settings.REPO_ROOT:
                try:
                    await service.open_repository(settings.REPO_ROOT)
                except RepositoryError as e:
                    logger.error(f"Could not open REPO_ROOT: {e.message}")
            yield
            await service.coordinator.drain()
        service.coordinator.close()
        logger.info("Shutting down review bridge")

    application = FastAPI(
        title="Review Bridge API",
        description="Shared git diff review between a human UI and MCP agents",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.review_service = service
    application.state.mcp = mcp

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["mcp-session-id"],
    )

    @application.exception_handler(ReviewBridgeException)
    async def review_bridge_exception_handler(request: Request, exc: ReviewBridgeException):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    application.include_router(api_router)
    # Routes registered above take precedence over the mounted MCP app
    application.mount("/", mcp_app)

    return application


def main() -> None:
    """Run the review bridge with uvicorn using the configured host and port."""
    import uvicorn

    setup_logging()
    settings = get_settings()
    logger.info(f"Review bridge listening on http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(
        create_application(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
