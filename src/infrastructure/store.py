"""
Request State Store contract.

The store is the sole authority for mutating a request's status and vehicle
linkage.  ``atomic_transition`` is a single all-or-nothing unit that:

1. re-reads the request and checks the expected prior status,
2. re-validates the seat fit while holding an exclusive lock on the
   vehicle's occupancy aggregate (when a ``SeatGuard`` is given),
3. writes status + supplementary fields and appends exactly one
   ``status_update`` notification,
4. returns the updated request.

Two implementations exist: ``InMemoryRequestStore`` (asyncio locks) and
``SqlRequestStateStore`` (row locks inside one database transaction).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from src.domain.entities import Request, TransitionFields, TripWindow, Vehicle
from src.domain.enums import RequestStatus
from src.domain.errors import Conflict, RequestNotFound


@dataclass(frozen=True)
class SeatGuard:
    """Seat-fit condition re-checked inside the transition."""

    vehicle_id: int
    group_size: int
    window: Optional[TripWindow] = None


class RequestStateStore(ABC):
    @abstractmethod
    async def get_request(self, request_id: int) -> Optional[Request]: ...

    @abstractmethod
    async def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]: ...

    @abstractmethod
    async def find_vehicle_by_plate(self, plate_no: str) -> Optional[Vehicle]:
        """Look up a non-archived vehicle by its normalised plate."""

    @abstractmethod
    async def list_vehicles(self) -> list[Vehicle]:
        """All non-archived vehicles."""

    @abstractmethod
    async def accepted_seats(
        self, vehicle_id: int, window: Optional[TripWindow] = None
    ) -> int:
        """Sum of passenger counts of ACCEPTED requests on the vehicle."""

    @abstractmethod
    async def atomic_transition(
        self,
        request_id: int,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        fields: TransitionFields,
        seat_guard: Optional[SeatGuard] = None,
    ) -> Request: ...


def ensure_expected(
    request: Optional[Request], request_id: int, expected: RequestStatus
) -> Request:
    """Re-check the transition precondition on a freshly read request."""
    if request is None:
        raise RequestNotFound(request_id)
    if request.status != expected:
        raise Conflict(request_id, expected.value, request.status.value)
    return request
