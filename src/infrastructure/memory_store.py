"""
In-memory Request State Store.

Backs tests and local runs.  Mutations go through per-vehicle and
per-request ``asyncio.Lock``s; there is no global lock, so decisions on
different vehicles never wait on each other.  Lock order is always
vehicle -> request; a request's lock is discarded once nobody holds
or waits on it.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from collections import defaultdict
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from src.domain.capacity import CapacityView, active_vehicle
from src.domain.entities import (
    Notification,
    Request,
    TransitionFields,
    TripWindow,
    Vehicle,
    normalize_plate,
    status_message,
)
from src.domain.enums import NotificationType, RequestStatus

from .store import RequestStateStore, SeatGuard, ensure_expected


class InMemoryRequestStore(RequestStateStore):
    def __init__(self):
        self.requests: dict[int, Request] = {}
        self.vehicles: dict[int, Vehicle] = {}
        self.notifications: list[Notification] = []
        self._vehicle_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._request_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._request_lock_users: defaultdict[int, int] = defaultdict(int)
        self._request_ids = itertools.count(1)
        self._vehicle_ids = itertools.count(1)
        self._notification_ids = itertools.count(1)

    # ── Seeding ───────────────────────────────────────────────────────

    def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        if vehicle.id is None:
            vehicle.id = next(self._vehicle_ids)
        vehicle.plate_no = normalize_plate(vehicle.plate_no)
        self.vehicles[vehicle.id] = vehicle
        return vehicle

    def add_request(self, request: Request) -> Request:
        if request.id is None:
            request.id = next(self._request_ids)
        self.requests[request.id] = request
        return request

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_request(self, request_id: int) -> Optional[Request]:
        request = self.requests.get(request_id)
        return copy.deepcopy(request) if request else None

    async def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        vehicle = self.vehicles.get(vehicle_id)
        return copy.copy(vehicle) if vehicle else None

    async def find_vehicle_by_plate(self, plate_no: str) -> Optional[Vehicle]:
        plate_no = normalize_plate(plate_no)
        for vehicle in self.vehicles.values():
            if vehicle.plate_no == plate_no and not vehicle.archived:
                return copy.copy(vehicle)
        return None

    async def list_vehicles(self) -> list[Vehicle]:
        return [copy.copy(v) for v in self.vehicles.values() if not v.archived]

    async def accepted_seats(
        self, vehicle_id: int, window: Optional[TripWindow] = None
    ) -> int:
        return self._occupied(vehicle_id, window)

    def _occupied(self, vehicle_id: int, window: Optional[TripWindow]) -> int:
        return sum(
            r.passenger_count
            for r in self.requests.values()
            if r.status == RequestStatus.ACCEPTED
            and r.vehicle_id == vehicle_id
            and (window is None or r.trip_window.overlaps(window))
        )

    # ── Atomic transition ─────────────────────────────────────────────

    @asynccontextmanager
    async def _request_lock(self, request_id: int):
        # Entries are dropped once no caller holds or awaits them.
        self._request_lock_users[request_id] += 1
        try:
            async with self._request_locks[request_id]:
                yield
        finally:
            self._request_lock_users[request_id] -= 1
            if not self._request_lock_users[request_id]:
                del self._request_lock_users[request_id]
                del self._request_locks[request_id]

    async def atomic_transition(
        self,
        request_id: int,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        fields: TransitionFields,
        seat_guard: Optional[SeatGuard] = None,
    ) -> Request:
        async with AsyncExitStack() as stack:
            if seat_guard is not None:
                await stack.enter_async_context(
                    self._vehicle_locks[seat_guard.vehicle_id]
                )
            await stack.enter_async_context(self._request_lock(request_id))

            current = ensure_expected(
                self.requests.get(request_id), request_id, expected_status
            )
            updated = copy.deepcopy(current)

            vehicle_id = None
            if seat_guard is not None:
                vehicle = active_vehicle(
                    self.vehicles.get(seat_guard.vehicle_id), seat_guard.vehicle_id
                )
                view = CapacityView(
                    vehicle.id,
                    vehicle.total_seats,
                    self._occupied(vehicle.id, seat_guard.window),
                )
                if not view.fits(seat_guard.group_size):
                    raise view.insufficient(seat_guard.group_size)
                vehicle_id = vehicle.id

            now = datetime.now(timezone.utc)
            updated.apply(new_status, fields, vehicle_id)
            updated.updated_at = now
            notification = Notification(
                id=next(self._notification_ids),
                request_id=request_id,
                type=NotificationType.STATUS_UPDATE,
                message=status_message(updated.destination, new_status),
                created_at=now,
            )

            # Commit: both writes happen with no suspension point between them.
            self.requests[request_id] = updated
            self.notifications.append(notification)
            return copy.deepcopy(updated)
