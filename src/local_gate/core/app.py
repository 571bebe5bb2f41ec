"""
FastAPI application configuration module
Responsible for creating and configuring FastAPI application instance
"""

from fastapi import FastAPI
from loguru import logger

from local_gate.config import settings
from local_gate.core.exception_handlers import setup_exception_handlers
from local_gate.core.middleware import setup_middleware
from local_gate.core.routes import setup_routes


def create_app() -> FastAPI:
    """create FastAPI application instance"""

    app = FastAPI(
        title=settings.app_name,
        description="Context packs for local inference backends: create, rank, expand and guard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None
    )

    # set middleware
    setup_middleware(app)

    # set exception handler
    setup_exception_handlers(app)

    # set routes
    setup_routes(app)

    # root path
    @app.get("/")
    async def root():
        """root path interface"""
        return {
            "message": "Welcome to Local Gate",
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else "Documentation disabled in production",
            "health": "/api/v1/health",
            "metrics": "/api/v1/metrics",
        }

    logger.debug(f"Created {settings.app_name} v{settings.app_version}")
    return app
