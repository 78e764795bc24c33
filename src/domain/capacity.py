"""
Capacity Ledger
===============

Answers "how many seats are committed on vehicle V" at decision time.

Occupancy rule
--------------
  occupied_seats  = sum(passenger_count) over ACCEPTED requests linked to V
  available_seats = max(0, total_seats - occupied_seats)

PENDING and DECLINED requests never count.  By default every accepted
request on a vehicle occupies it regardless of date (fleet-wide per-vehicle
sum).  With ``window_scoped`` enabled and a trip window supplied, only
accepted requests whose windows overlap are summed.

The ledger is read-only: it never writes to the store.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .entities import TripWindow, Vehicle
from .errors import InsufficientSeats, StorageUnavailable, VehicleNotFound

if TYPE_CHECKING:
    from src.infrastructure.store import RequestStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityView:
    vehicle_id: int
    total_seats: int
    occupied_seats: int

    @property
    def available_seats(self) -> int:
        return max(0, self.total_seats - self.occupied_seats)

    def fits(self, group_size: int) -> bool:
        return group_size <= self.available_seats

    def after(self, group_size: int) -> "CapacityView":
        return CapacityView(
            self.vehicle_id, self.total_seats, self.occupied_seats + group_size
        )

    def insufficient(self, group_size: int) -> InsufficientSeats:
        return InsufficientSeats(
            total_seats=self.total_seats,
            occupied_seats=self.occupied_seats,
            available_seats=self.available_seats,
            requested_group_size=group_size,
        )


def active_vehicle(vehicle: Optional[Vehicle], vehicle_id: int | str) -> Vehicle:
    """Return *vehicle* if it exists and is not archived, else raise."""
    if vehicle is None or vehicle.archived:
        raise VehicleNotFound(vehicle_id)
    return vehicle


class CapacityLedger:
    def __init__(
        self,
        store: "RequestStateStore",
        *,
        window_scoped: bool = False,
        read_retries: int = 0,
    ):
        self.store = store
        self.window_scoped = window_scoped
        self.read_retries = read_retries

    async def occupancy(
        self, vehicle_id: int, window: Optional[TripWindow] = None
    ) -> CapacityView:
        """Seat counts for an active vehicle; raises ``VehicleNotFound``."""
        return await self._with_retries(self._occupancy, vehicle_id, window)

    async def fleet_availability(self) -> list[CapacityView]:
        return await self._with_retries(self._fleet_availability)

    # ── Internals ─────────────────────────────────────────────────────

    async def _occupancy(
        self, vehicle_id: int, window: Optional[TripWindow]
    ) -> CapacityView:
        vehicle = active_vehicle(await self.store.get_vehicle(vehicle_id), vehicle_id)
        occupied = await self.store.accepted_seats(
            vehicle.id, window if self.window_scoped else None
        )
        return CapacityView(vehicle.id, vehicle.total_seats, occupied)

    async def _fleet_availability(self) -> list[CapacityView]:
        views = []
        for vehicle in await self.store.list_vehicles():
            occupied = await self.store.accepted_seats(vehicle.id)
            views.append(CapacityView(vehicle.id, vehicle.total_seats, occupied))
        return views

    async def _with_retries(self, func, *args):
        attempt = 0
        while True:
            try:
                return await func(*args)
            except StorageUnavailable:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Occupancy read failed, retrying (%d/%d)",
                    attempt,
                    self.read_retries,
                )
                await asyncio.sleep(0.05 * attempt)
