"""
Database-backed Request State Store.

``atomic_transition`` runs inside one transaction:

  SELECT vehicle FOR UPDATE        -- exclusive lock on the occupancy aggregate
  SELECT request FOR UPDATE        -- re-read status
  SELECT sum(passenger_count) ...  -- re-validate seat fit
  UPDATE request; INSERT notification
  COMMIT

Any exception rolls the whole unit back, so a status write is never visible
without its notification.  Connection-level failures surface as
``StorageUnavailable``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import NotificationModel
from .repositories import (
    RequestRepository,
    VehicleRepository,
    request_to_domain,
    vehicle_to_domain,
)
from .store import RequestStateStore, SeatGuard, ensure_expected
from src.domain.capacity import CapacityView, active_vehicle
from src.domain.entities import (
    Request,
    TransitionFields,
    TripWindow,
    Vehicle,
    status_message,
)
from src.domain.enums import NotificationType, RequestStatus
from src.domain.errors import StorageUnavailable


class SqlRequestStateStore(RequestStateStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        try:
            async with self.session_factory() as session:
                yield session
        except (OperationalError, InterfaceError) as exc:
            raise StorageUnavailable(str(exc.orig or exc)) from exc

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_request(self, request_id: int) -> Optional[Request]:
        async with self._session() as session:
            row = await RequestRepository(session).get_by_id(request_id)
            return request_to_domain(row) if row else None

    async def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        async with self._session() as session:
            row = await VehicleRepository(session).get_by_id(vehicle_id)
            return vehicle_to_domain(row) if row else None

    async def find_vehicle_by_plate(self, plate_no: str) -> Optional[Vehicle]:
        async with self._session() as session:
            row = await VehicleRepository(session).get_by_plate(plate_no)
            return vehicle_to_domain(row) if row else None

    async def list_vehicles(self) -> list[Vehicle]:
        async with self._session() as session:
            rows = await VehicleRepository(session).get_active()
            return [vehicle_to_domain(r) for r in rows]

    async def accepted_seats(
        self, vehicle_id: int, window: Optional[TripWindow] = None
    ) -> int:
        async with self._session() as session:
            return await RequestRepository(session).accepted_seats(vehicle_id, window)

    # ── Atomic transition ─────────────────────────────────────────────

    async def atomic_transition(
        self,
        request_id: int,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        fields: TransitionFields,
        seat_guard: Optional[SeatGuard] = None,
    ) -> Request:
        async with self._session() as session:
            async with session.begin():
                requests = RequestRepository(session)

                vehicle_id = None
                if seat_guard is not None:
                    row = await VehicleRepository(session).get_for_update(
                        seat_guard.vehicle_id
                    )
                    vehicle = active_vehicle(
                        vehicle_to_domain(row) if row else None,
                        seat_guard.vehicle_id,
                    )
                    vehicle_id = vehicle.id

                row = await requests.get_for_update(request_id)
                current = ensure_expected(
                    request_to_domain(row) if row else None,
                    request_id,
                    expected_status,
                )

                if seat_guard is not None:
                    view = CapacityView(
                        vehicle.id,
                        vehicle.total_seats,
                        await requests.accepted_seats(vehicle.id, seat_guard.window),
                    )
                    if not view.fits(seat_guard.group_size):
                        raise view.insufficient(seat_guard.group_size)

                current.apply(new_status, fields, vehicle_id)
                row.status = current.status
                row.vehicle_id = current.vehicle_id
                row.driver_name = current.driver_name
                row.contact_no = current.contact_no
                row.vehicle_type = current.vehicle_type
                row.plate_no = current.plate_no
                row.reason_for_decline = current.decline_reason

                session.add(
                    NotificationModel(
                        request_id=request_id,
                        type=NotificationType.STATUS_UPDATE,
                        message=status_message(row.destination, new_status),
                        read=False,
                    )
                )
                await session.flush()
                await session.refresh(row)
                return request_to_domain(row)
