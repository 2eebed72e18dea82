"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from agentchat import __version__
from agentchat.api.middleware import RateLimitMiddleware
from agentchat.api.routes import admin, agents, attachments, chat, chats, credits, documents, health, models
from agentchat.cache import get_cache
from agentchat.config import settings
from agentchat.database import dispose_engine
from agentchat.errors import (
    InsufficientCreditsError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ToolExecutionError,
    ValidationError,
)
from agentchat.logging_config import configure_logging

logger = structlog.get_logger()

# Domain error -> HTTP status
ERROR_STATUS = {
    NotFoundError: 404,
    PermissionDeniedError: 401,
    InsufficientCreditsError: 402,
    ValidationError: 400,
    StorageError: 502,
    ToolExecutionError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging()
    logger.info("application_startup", env=settings.app_env)
    yield
    await get_cache().close()
    await dispose_engine()
    logger.info("application_shutdown")


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc))
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)

    return handler


def create_app() -> FastAPI:
    app = FastAPI(
        title="Agent Chat",
        description="Multi-agent AI chat with streaming tools and artifacts",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for error, status_code in ERROR_STATUS.items():
        app.add_exception_handler(error, _error_handler(status_code))

    app.include_router(health.router, tags=["Health"])
    app.include_router(chat.router, prefix="/api", tags=["Chat"])
    app.include_router(chats.router, prefix="/api", tags=["Chats"])
    app.include_router(agents.router, prefix="/api", tags=["Agents"])
    app.include_router(models.router, prefix="/api", tags=["Models"])
    app.include_router(credits.router, prefix="/api", tags=["Credits"])
    app.include_router(documents.router, prefix="/api", tags=["Documents"])
    app.include_router(attachments.router, prefix="/api", tags=["Attachments"])
    app.include_router(admin.router, prefix="/api", tags=["Admin"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Agent Chat",
            "version": __version__,
            "status": "running",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agentchat.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
