"""
PLAYHUB API - Main Application Entry Point

FastAPI backend for the playlist-sharing platform.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from playhub.api.auth.cache import PrincipalCache
from playhub.api.config import settings
from playhub.api.db.session import close_db, init_db
from playhub.api.errors import register_exception_handlers


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    await init_db()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # Shutdown
    await close_db()


def create_app(principal_cache: PrincipalCache | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        principal_cache: Cache to resolve principals from; a fresh one
            is created when omitted
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="PLAYHUB - Playlist sharing platform API",
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.state.principal_cache = principal_cache or PrincipalCache()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    from playhub.api.auth.routes import router as auth_router
    from playhub.api.users.routes import router as users_router
    from playhub.api.genres.routes import router as genres_router
    from playhub.api.playlists.routes import router as playlists_router
    from playhub.api.analytics.routes import router as analytics_router
    from playhub.api.audit.routes import router as audit_router

    prefix = settings.API_PREFIX
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(genres_router, prefix=f"{prefix}/genres", tags=["Genres"])
    app.include_router(playlists_router, prefix=f"{prefix}/playlists", tags=["Playlists"])
    app.include_router(analytics_router, prefix=f"{prefix}/analytics", tags=["Analytics"])
    app.include_router(audit_router, prefix=f"{prefix}/audit-log", tags=["Audit Log"])

    # Health check endpoint
    @app.get(f"{prefix}/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "service": settings.APP_NAME,
        }

    return app


app = create_app()
