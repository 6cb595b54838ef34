"""
Paddock Live Chat - Main Application Entry Point

Real-time support chat for the sim-racing community site.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from livechat.core.config import get_settings
from livechat.core.logger import logger
from livechat.interfaces.auth_provider import IAuthProvider
from livechat.interfaces.chat_repository import IChatRepository


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Paddock Live Chat in {settings.ENVIRONMENT} mode...")

    # Initialize database if needed
    if settings.is_local:
        from livechat.infrastructure.local.database import init_db

        await init_db()

    await app.state.realtime.start()

    yield

    # Shutdown
    logger.info("Shutting down Paddock Live Chat...")
    await app.state.realtime.shutdown()
    if settings.is_local:
        from livechat.infrastructure.local.database import dispose_engine

        await dispose_engine()


def create_app(
    chat_repo: Optional[IChatRepository] = None,
    auth_provider: Optional[IAuthProvider] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Paddock Live Chat",
        description="Support chat between site visitors and the admin team",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    from livechat.api.deps import get_auth_provider, get_chat_repository
    from livechat.services.realtime_service import RealtimeHub

    app.state.realtime = RealtimeHub(chat_repo or get_chat_repository(), settings)
    if auth_provider is not None:
        app.dependency_overrides[get_auth_provider] = lambda: auth_provider

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        line = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f}ms)"
        if response.status_code >= 400:
            logger.warning(line)
        else:
            logger.info(line)
        return response

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from livechat.api import admin_chats, chats, realtime

    app.include_router(chats.router, prefix="/api/chats", tags=["chats"])
    app.include_router(admin_chats.router, prefix="/api/admin/chats", tags=["admin"])
    app.include_router(realtime.router, tags=["realtime"])
    app.include_router(realtime.router, prefix="/api/realtime", tags=["realtime"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        hub = app.state.realtime
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0",
            "connections": hub.registry.connection_count(),
            "admins": hub.registry.global_admin_count(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
