"""
Decision outcomes and the seat-fit rule.

    fits  <=>  group_size <= available_seats

Outcomes are plain values so callers can branch on type without catching
exceptions:

* ``Accept``   -- seat-fit passed (read-only evaluation)
* ``Accepted`` -- request committed as ACCEPTED, with seat counts after
* ``Declined`` -- request committed as DECLINED
* ``Rejected`` -- typed refusal carrying the error code and diagnostics
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .capacity import CapacityView
from .entities import Request
from .errors import DispatchError, InvalidGroupSize


@dataclass(frozen=True)
class Accept:
    vehicle_id: int
    total_seats: int
    occupied_after: int
    available_after: int


@dataclass(frozen=True)
class Accepted:
    request: Request
    occupied_after: int
    available_after: int


@dataclass(frozen=True)
class Declined:
    request: Request


@dataclass(frozen=True)
class Rejected:
    reason: str
    message: str
    details: dict = field(default_factory=dict)
    retryable: bool = False

    @classmethod
    def from_error(cls, error: DispatchError) -> "Rejected":
        return cls(
            reason=error.code,
            message=error.message,
            details=error.details,
            retryable=error.retryable,
        )

    @property
    def available_seats(self) -> int | None:
        return self.details.get("available_seats")

    @property
    def requested_group_size(self) -> int | None:
        return self.details.get("requested_group_size")


SeatFit = Union[Accept, Rejected]
Decision = Union[Accepted, Declined, Rejected]


def check_group_size(group_size: int) -> None:
    if group_size <= 0:
        raise InvalidGroupSize(group_size)


def seat_fit(view: CapacityView, group_size: int) -> SeatFit:
    """Apply the seat-fit rule to a capacity snapshot."""
    if not view.fits(group_size):
        return Rejected.from_error(view.insufficient(group_size))
    after = view.after(group_size)
    return Accept(
        vehicle_id=view.vehicle_id,
        total_seats=view.total_seats,
        occupied_after=after.occupied_seats,
        available_after=after.available_seats,
    )
