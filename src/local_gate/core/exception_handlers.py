"""
Exception handler module
"""

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from local_gate.config import settings
from local_gate.core.exceptions import EmptySelectionError, PackNotFoundError


def setup_exception_handlers(app: FastAPI) -> None:
    """set exception handlers"""

    @app.exception_handler(PackNotFoundError)
    async def pack_not_found_handler(request, exc):
        logger.info(f"Context pack lookup failed: {exc.pack_id}")
        return JSONResponse(
            status_code=404,
            content={
                "error": "Context pack not found",
                "message": str(exc)
            }
        )

    @app.exception_handler(EmptySelectionError)
    async def empty_selection_handler(request, exc):
        logger.info(f"Empty selection: folders={exc.folders} files={len(exc.files)}")
        return JSONResponse(
            status_code=422,
            content={
                "error": "Empty selection",
                "message": str(exc)
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """global exception handler"""
        logger.error(f"Global exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.debug else "An unexpected error occurred"
            }
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        """HTTP exception handler"""
        logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "HTTP error",
                "message": exc.detail
            }
        )
