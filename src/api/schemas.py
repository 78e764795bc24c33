"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from src.domain.capacity import CapacityView
from src.domain.entities import Request


# ── Requests ──────────────────────────────────────────────────────────


class TravelRequestCreate(BaseModel):
    user_id: Optional[int] = None
    destination: str = Field(..., min_length=1, max_length=255)
    requesting_office: Optional[str] = Field(None, max_length=255)
    passenger_names: Union[list[str], str, None] = Field(
        None,
        description="Passenger list, or a comma-separated string of names.",
    )
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None


class StatusUpdateRequest(BaseModel):
    status: Literal["Accepted", "Declined"]
    vehicle_id: Optional[int] = None
    plate_no: Optional[str] = Field(None, max_length=20)
    driver_name: Optional[str] = Field(None, max_length=120)
    contact_no: Optional[str] = Field(None, max_length=40)
    vehicle_type: Optional[str] = Field(None, max_length=120)
    reason_for_decline: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────


class TravelRequestResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    destination: str
    requesting_office: Optional[str] = None
    passenger_names: list[str] = []
    passenger_count: int
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    status: str
    vehicle_id: Optional[int] = None
    driver_name: Optional[str] = None
    contact_no: Optional[str] = None
    vehicle_type: Optional[str] = None
    plate_no: Optional[str] = None
    reason_for_decline: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_domain(cls, request: Request) -> "TravelRequestResponse":
        return cls(
            id=request.id,
            user_id=request.user_id,
            destination=request.destination,
            requesting_office=request.requesting_office,
            passenger_names=request.passenger_names,
            passenger_count=request.passenger_count,
            departure_time=request.trip_window.start,
            arrival_time=request.trip_window.end,
            status=request.status.value,
            vehicle_id=request.vehicle_id,
            driver_name=request.driver_name,
            contact_no=request.contact_no,
            vehicle_type=request.vehicle_type,
            plate_no=request.plate_no,
            reason_for_decline=request.decline_reason,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


class SeatCounts(BaseModel):
    occupied_seats: int
    available_seats: int


class DecisionResponse(BaseModel):
    status: str = "success"
    message: str
    data: TravelRequestResponse
    seats: Optional[SeatCounts] = None


class AvailabilityResponse(BaseModel):
    vehicle_id: int
    total_seats: int
    occupied_seats: int
    available_seats: int

    @classmethod
    def from_view(cls, view: CapacityView) -> "AvailabilityResponse":
        return cls(
            vehicle_id=view.vehicle_id,
            total_seats=view.total_seats,
            occupied_seats=view.occupied_seats,
            available_seats=view.available_seats,
        )


class NotificationResponse(BaseModel):
    id: int
    request_id: Optional[int] = None
    type: str
    message: str
    read: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row) -> "NotificationResponse":
        return cls(
            id=row.id,
            request_id=row.request_id,
            type=getattr(row.type, "value", row.type),
            message=row.message,
            read=row.read,
            created_at=row.created_at,
        )


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int


class RequestStatsResponse(BaseModel):
    pending: int
    accepted: int
    declined: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    code: str
    details: Optional[dict[str, Any]] = None
