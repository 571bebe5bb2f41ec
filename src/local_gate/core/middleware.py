"""
Middleware configuration module
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from local_gate.config import settings


def setup_middleware(app: FastAPI) -> None:
    """set application middleware"""

    # The notes app calls from its own origin; no cookies or auth headers are involved
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=settings.cors_allow_methods,
        allow_headers=["Content-Type"],
    )

    # Gzip compression middleware
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
