"""
Travel request endpoints
========================

POST /api/v1/requests               -- submit a request (PENDING)
GET  /api/v1/requests/{request_id}  -- current state
PUT  /api/v1/requests/{request_id}/status -- accept / decline
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_decision_engine, get_store
from src.api.middleware import limiter
from src.api.schemas import (
    DecisionResponse,
    ErrorResponse,
    SeatCounts,
    StatusUpdateRequest,
    TravelRequestCreate,
    TravelRequestResponse,
)
from src.config import settings
from src.domain.decision import Accepted, Rejected
from src.domain.entities import TransitionFields, normalize_plate, status_message
from src.domain.enums import DecisionAction, NotificationType, RequestStatus
from src.infrastructure.repositories import (
    NotificationRepository,
    RequestRepository,
    request_to_domain,
)
from src.infrastructure.store import RequestStateStore
from src.services.decision_engine import DecisionEngine

router = APIRouter(prefix="/requests", tags=["requests"])

# Rejection code -> HTTP status; anything else is a 400.
REJECTION_STATUS = {
    "REQUEST_NOT_FOUND": 404,
    "REQUEST_NOT_PENDING": 409,
    "CONFLICT": 409,
}


@router.post(
    "",
    status_code=202,
    response_model=TravelRequestResponse,
    summary="Submit a travel request",
)
@limiter.limit(settings.rate_limit)
async def create_request(
    request: Request,
    body: TravelRequestCreate,
    db: AsyncSession = Depends(get_db),
):
    row = await RequestRepository(db).create_request(
        user_id=body.user_id,
        destination=body.destination,
        requesting_office=body.requesting_office,
        passenger_names=body.passenger_names,
        departure_time=body.departure_time,
        arrival_time=body.arrival_time,
    )
    await NotificationRepository(db).create(
        request_id=row.id,
        type=NotificationType.NEW_REQUEST,
        message=(
            f"New travel request to {row.destination}"
            + (f" from {row.requesting_office}" if row.requesting_office else "")
        ),
    )
    await db.refresh(row)
    return TravelRequestResponse.from_domain(request_to_domain(row))


@router.get(
    "/{request_id}",
    response_model=TravelRequestResponse,
    summary="Get a travel request",
)
@limiter.limit(settings.rate_limit)
async def get_request(
    request: Request,
    request_id: int,
    store: RequestStateStore = Depends(get_store),
):
    travel_request = await store.get_request(request_id)
    if not travel_request:
        raise HTTPException(status_code=404, detail="Request not found")
    return TravelRequestResponse.from_domain(travel_request)


@router.put(
    "/{request_id}/status",
    response_model=DecisionResponse,
    summary="Accept or decline a request",
    description=(
        "Accepting requires a vehicle (id or plate number) with enough free "
        "seats for the whole group. The status change and its notification "
        "are committed together."
    ),
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def update_request_status(
    request: Request,
    request_id: int,
    body: StatusUpdateRequest,
    engine: DecisionEngine = Depends(get_decision_engine),
):
    action = (
        DecisionAction.ACCEPT
        if body.status == RequestStatus.ACCEPTED.value
        else DecisionAction.DECLINE
    )
    fields = TransitionFields(
        driver_name=body.driver_name,
        contact_no=body.contact_no,
        vehicle_type=body.vehicle_type,
        plate_no=normalize_plate(body.plate_no) if body.plate_no else None,
        decline_reason=body.reason_for_decline,
    )
    result = await engine.decide(
        request_id,
        action,
        vehicle_id=body.vehicle_id,
        plate_no=body.plate_no,
        fields=fields,
    )

    if isinstance(result, Rejected):
        return JSONResponse(
            status_code=REJECTION_STATUS.get(result.reason, 400),
            content=ErrorResponse(
                message=result.message,
                code=result.reason,
                details=result.details or None,
            ).model_dump(),
        )

    seats = None
    if isinstance(result, Accepted):
        seats = SeatCounts(
            occupied_seats=result.occupied_after,
            available_seats=result.available_after,
        )
    return DecisionResponse(
        message=status_message(result.request.destination, result.request.status),
        data=TravelRequestResponse.from_domain(result.request),
        seats=seats,
    )
