"""
Admin / observability endpoints
===============================

GET /api/v1/admin/stats  -- request counts per status
GET /api/v1/admin/health -- simple health check
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import HealthResponse, RequestStatsResponse
from src.config import settings
from src.domain.enums import RequestStatus
from src.infrastructure.repositories import RequestRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/stats",
    response_model=RequestStatsResponse,
    summary="Request counts per status",
)
@limiter.limit(settings.rate_limit)
async def request_stats(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    repo = RequestRepository(db)
    return RequestStatsResponse(
        pending=await repo.count_by_status(RequestStatus.PENDING),
        accepted=await repo.count_by_status(RequestStatus.ACCEPTED),
        declined=await repo.count_by_status(RequestStatus.DECLINED),
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
