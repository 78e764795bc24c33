"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Request``: a request is decided exactly once
  (PENDING -> ACCEPTED | DECLINED).
- ``TripWindow.overlaps`` backs the interval-aware capacity ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import NotificationType, RequestStatus, REQUEST_TRANSITIONS


class InvalidStateTransition(Exception):
    """Raised when a request status change violates the state machine."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class TripWindow:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def overlaps(self, other: "TripWindow") -> bool:
        """Closed-interval overlap; a missing bound is unbounded."""
        if self.end is not None and other.start is not None and self.end < other.start:
            return False
        if other.end is not None and self.start is not None and other.end < self.start:
            return False
        return True


@dataclass(frozen=True)
class TransitionFields:
    """Supplementary fields passed through verbatim on a decision."""

    driver_name: Optional[str] = None
    contact_no: Optional[str] = None
    vehicle_type: Optional[str] = None
    plate_no: Optional[str] = None
    decline_reason: Optional[str] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Request:
    id: Optional[int] = None
    user_id: Optional[int] = None
    destination: str = ""
    requesting_office: Optional[str] = None
    passenger_names: list[str] = field(default_factory=list)
    passenger_count: int = 1
    trip_window: TripWindow = field(default_factory=TripWindow)
    status: RequestStatus = RequestStatus.PENDING
    vehicle_id: Optional[int] = None
    driver_name: Optional[str] = None
    contact_no: Optional[str] = None
    vehicle_type: Optional[str] = None
    plate_no: Optional[str] = None
    decline_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def transition_to(self, new_status: RequestStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = REQUEST_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def apply(
        self,
        new_status: RequestStatus,
        fields: TransitionFields,
        vehicle_id: Optional[int] = None,
    ) -> None:
        """Transition and copy the outcome-specific fields."""
        self.transition_to(new_status)
        if new_status == RequestStatus.ACCEPTED:
            self.vehicle_id = vehicle_id
            self.driver_name = fields.driver_name
            self.contact_no = fields.contact_no
            self.vehicle_type = fields.vehicle_type
            self.plate_no = fields.plate_no
            self.decline_reason = None
        else:
            self.vehicle_id = None
            self.decline_reason = fields.decline_reason


@dataclass
class Vehicle:
    id: Optional[int] = None
    plate_no: str = ""
    vehicle_model: Optional[str] = None
    total_seats: int = 4
    archived_at: Optional[datetime] = None

    @property
    def archived(self) -> bool:
        return self.archived_at is not None


@dataclass
class Notification:
    id: Optional[int] = None
    request_id: Optional[int] = None
    type: NotificationType = NotificationType.STATUS_UPDATE
    message: str = ""
    read: bool = False
    created_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None


# ── Helpers ───────────────────────────────────────────────────────────


def normalize_plate(plate: str) -> str:
    return plate.strip().upper()


def passenger_count(names: Any) -> int:
    """
    Derive a group size from a passenger-name list.

    Lists count their non-blank entries, strings are comma-split; anything
    absent, empty or unrecognised counts as a single passenger.
    """
    if isinstance(names, (list, tuple)):
        count = sum(1 for n in names if str(n).strip())
    elif isinstance(names, str):
        count = sum(1 for n in names.split(",") if n.strip())
    else:
        count = 0
    return count or 1


def status_message(destination: str, status: RequestStatus) -> str:
    return f"Request to {destination} has been {status.value.lower()}"
