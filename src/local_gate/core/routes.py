"""
Route configuration module
"""

from fastapi import FastAPI

from local_gate.api.context_routes import router as context_router
from local_gate.api.system_routes import router as system_router


def setup_routes(app: FastAPI) -> None:
    """set application routes"""

    app.include_router(system_router, prefix="/api/v1", tags=["General"])
    app.include_router(context_router, prefix="/api/v1")
