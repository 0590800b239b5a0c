"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health   -- simple health check
GET /api/v1/admin/realtime -- live connection counts
"""

from fastapi import APIRouter, Depends, Request

from ridecore.api.dependencies import get_hub
from ridecore.api.middleware import limiter
from ridecore.api.schemas import HealthResponse, RealtimeStatsResponse
from ridecore.config import settings
from ridecore.realtime.hub import RealtimeHub

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/realtime",
    response_model=RealtimeStatsResponse,
    summary="Live connection statistics",
)
@limiter.limit(settings.rate_limit)
async def realtime_stats(
    request: Request,
    realtime: RealtimeHub = Depends(get_hub),
):
    return RealtimeStatsResponse(**realtime.stats())


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
