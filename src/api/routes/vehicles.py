"""
Vehicle availability endpoints
==============================

GET /api/v1/vehicles/availability               -- seat counts, whole fleet
GET /api/v1/vehicles/{vehicle_id}/availability  -- seat counts, one vehicle
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import get_decision_engine
from src.api.middleware import limiter
from src.api.schemas import AvailabilityResponse
from src.config import settings
from src.domain.errors import VehicleNotFound
from src.services.decision_engine import DecisionEngine

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get(
    "/availability",
    response_model=list[AvailabilityResponse],
    summary="Seat availability for every active vehicle",
)
@limiter.limit(settings.rate_limit)
async def fleet_availability(
    request: Request,
    engine: DecisionEngine = Depends(get_decision_engine),
):
    views = await engine.ledger.fleet_availability()
    return [AvailabilityResponse.from_view(v) for v in views]


@router.get(
    "/{vehicle_id}/availability",
    response_model=AvailabilityResponse,
    summary="Seat availability for one vehicle",
)
@limiter.limit(settings.rate_limit)
async def vehicle_availability(
    request: Request,
    vehicle_id: int,
    engine: DecisionEngine = Depends(get_decision_engine),
):
    try:
        view = await engine.ledger.occupancy(vehicle_id)
    except VehicleNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return AvailabilityResponse.from_view(view)
