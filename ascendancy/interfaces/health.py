"""
Health check router.

Liveness check only. External services are checked by
``GET /trading/services``.
"""

from fastapi import APIRouter

from ascendancy.core.config import settings
from ascendancy.interfaces.trading.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status and version.",
)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=settings.version)
