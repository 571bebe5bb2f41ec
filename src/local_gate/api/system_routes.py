"""
Health and metrics routes
"""

from typing import Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from local_gate.__version__ import get_features
from local_gate.api.context_routes import get_engine
from local_gate.config import settings
from local_gate.engine import ContextPackEngine
from local_gate.services.utils.metrics import metrics_service

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    services: Dict[str, bool]
    version: str
    features: Dict[str, bool]
    packs: int


@router.get("/health", response_model=HealthResponse)
async def health_check(engine: ContextPackEngine = Depends(get_engine)):
    """health check interface"""
    services_status = {
        "read_item_content": engine.host.has("read_item_content"),
        "list_candidate_files": engine.host.has("list_candidate_files"),
        "intercept_send": engine.host.has("intercept_send"),
    }
    overall_status = "healthy" if services_status["list_candidate_files"] else "degraded"
    return HealthResponse(
        status=overall_status,
        services=services_status,
        version=settings.app_version,
        features=get_features(),
        packs=len(engine.store),
    )


@router.get("/metrics")
async def metrics():
    """Prometheus exposition of engine metrics"""
    return Response(
        content=metrics_service.get_metrics(),
        media_type=metrics_service.get_content_type(),
    )
