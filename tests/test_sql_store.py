"""
SQL store tests on in-memory SQLite.

Exercises the transactional contract: status + fields + notification are
written together, preconditions are re-checked, and a failed seat
re-validation leaves no trace.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from src.domain.capacity import CapacityLedger
from src.domain.decision import Accepted, Declined, Rejected
from src.domain.entities import TransitionFields
from src.domain.enums import NotificationType, RequestStatus
from src.domain.errors import (
    Conflict,
    InsufficientSeats,
    RequestNotFound,
    StorageUnavailable,
    VehicleNotFound,
)
from src.infrastructure.models import NotificationModel, VehicleModel
from src.infrastructure.repositories import RequestRepository, VehicleRepository
from src.infrastructure.sql_store import SqlRequestStateStore
from src.infrastructure.store import SeatGuard
from src.services.decision_engine import DecisionEngine


async def _seed_vehicle(factory, capacity: int, plate: str = "abc 123", archived=False):
    async with factory() as session:
        vehicle = await VehicleRepository(session).create(
            VehicleModel(
                plate_no=plate,
                vehicle_model="Toyota Hiace",
                capacity=capacity,
                archived_at=datetime.now(timezone.utc) if archived else None,
            )
        )
        await session.commit()
        return vehicle.id


async def _seed_request(
    factory, names, status=RequestStatus.PENDING, vehicle_id=None, **times
):
    async with factory() as session:
        request = await RequestRepository(session).create_request(
            destination="Makati", passenger_names=names, **times
        )
        request.status = status
        request.vehicle_id = vehicle_id
        await session.commit()
        return request.id


async def _notification_count(factory) -> int:
    async with factory() as session:
        result = await session.execute(
            select(func.count()).select_from(NotificationModel)
        )
        return result.scalar()


class TestReads:
    @pytest.mark.asyncio
    async def test_intake_fixes_passenger_count(self, session_factory, sql_store):
        request_id = await _seed_request(session_factory, "Ana, Ben, Carla")

        request = await sql_store.get_request(request_id)

        assert request.passenger_count == 3
        assert request.passenger_names == ["Ana", "Ben", "Carla"]
        assert request.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_plate_lookup_is_normalised(self, session_factory, sql_store):
        vehicle_id = await _seed_vehicle(session_factory, 4, plate=" xyz 9 ")

        vehicle = await sql_store.find_vehicle_by_plate("XYZ 9")

        assert vehicle.id == vehicle_id
        assert vehicle.plate_no == "XYZ 9"

    @pytest.mark.asyncio
    async def test_accepted_seats_sums_accepted_only(self, session_factory, sql_store):
        vehicle_id = await _seed_vehicle(session_factory, 10)
        await _seed_request(session_factory, ["A", "B"], RequestStatus.ACCEPTED, vehicle_id)
        await _seed_request(session_factory, ["C"], RequestStatus.PENDING, vehicle_id)
        await _seed_request(session_factory, ["D"], RequestStatus.DECLINED, vehicle_id)

        assert await sql_store.accepted_seats(vehicle_id) == 2

    @pytest.mark.asyncio
    async def test_archived_vehicles_are_not_listed(self, session_factory, sql_store):
        active = await _seed_vehicle(session_factory, 4, plate="ONE 1")
        await _seed_vehicle(session_factory, 4, plate="TWO 2", archived=True)

        vehicles = await sql_store.list_vehicles()

        assert [v.id for v in vehicles] == [active]


class TestAtomicTransition:
    @pytest.mark.asyncio
    async def test_accept_writes_status_fields_and_notification(
        self, session_factory, sql_store
    ):
        vehicle_id = await _seed_vehicle(session_factory, 6)
        request_id = await _seed_request(session_factory, ["A", "B", "C", "D"])

        updated = await sql_store.atomic_transition(
            request_id,
            RequestStatus.PENDING,
            RequestStatus.ACCEPTED,
            TransitionFields(driver_name="Robert Chen", plate_no="ABC 123"),
            SeatGuard(vehicle_id, 4),
        )

        assert updated.status == RequestStatus.ACCEPTED
        assert updated.vehicle_id == vehicle_id
        assert updated.driver_name == "Robert Chen"
        async with session_factory() as session:
            rows = (await session.execute(select(NotificationModel))).scalars().all()
        assert len(rows) == 1
        assert rows[0].type == NotificationType.STATUS_UPDATE
        assert rows[0].message == "Request to Makati has been accepted"

    @pytest.mark.asyncio
    async def test_failed_seat_check_rolls_back(self, session_factory, sql_store):
        vehicle_id = await _seed_vehicle(session_factory, 4)
        await _seed_request(session_factory, ["A", "B", "C"], RequestStatus.ACCEPTED, vehicle_id)
        request_id = await _seed_request(session_factory, ["D", "E"])

        with pytest.raises(InsufficientSeats) as exc_info:
            await sql_store.atomic_transition(
                request_id,
                RequestStatus.PENDING,
                RequestStatus.ACCEPTED,
                TransitionFields(),
                SeatGuard(vehicle_id, 2),
            )

        assert exc_info.value.available_seats == 1
        request = await sql_store.get_request(request_id)
        assert request.status == RequestStatus.PENDING
        assert request.vehicle_id is None
        assert await _notification_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_stale_expected_status_is_conflict(self, session_factory, sql_store):
        request_id = await _seed_request(session_factory, ["A"], RequestStatus.DECLINED)

        with pytest.raises(Conflict):
            await sql_store.atomic_transition(
                request_id,
                RequestStatus.PENDING,
                RequestStatus.DECLINED,
                TransitionFields(decline_reason="again"),
            )
        assert await _notification_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_missing_request(self, sql_store):
        with pytest.raises(RequestNotFound):
            await sql_store.atomic_transition(
                12345, RequestStatus.PENDING, RequestStatus.DECLINED, TransitionFields()
            )

    @pytest.mark.asyncio
    async def test_archived_vehicle_in_guard(self, session_factory, sql_store):
        vehicle_id = await _seed_vehicle(session_factory, 4, archived=True)
        request_id = await _seed_request(session_factory, ["A"])

        with pytest.raises(VehicleNotFound):
            await sql_store.atomic_transition(
                request_id,
                RequestStatus.PENDING,
                RequestStatus.ACCEPTED,
                TransitionFields(),
                SeatGuard(vehicle_id, 1),
            )

    @pytest.mark.asyncio
    async def test_connection_errors_become_storage_unavailable(self):
        factory = MagicMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("refused"))
        )
        store = SqlRequestStateStore(factory)

        with pytest.raises(StorageUnavailable):
            await store.get_request(1)


class TestEngineOnSql:
    @pytest.mark.asyncio
    async def test_scenarios_end_to_end(self, session_factory, sql_store):
        engine = DecisionEngine(sql_store, CapacityLedger(sql_store), timeout_seconds=5)
        vehicle_id = await _seed_vehicle(session_factory, 6)
        first = await _seed_request(session_factory, ["A", "B", "C", "D"])
        second = await _seed_request(session_factory, ["E", "F", "G"])
        third = await _seed_request(session_factory, ["H"])

        accepted = await engine.accept(first, vehicle_id=vehicle_id)
        assert isinstance(accepted, Accepted)
        assert (accepted.occupied_after, accepted.available_after) == (4, 2)

        rejected = await engine.accept(second, vehicle_id=vehicle_id)
        assert isinstance(rejected, Rejected)
        assert rejected.reason == "INSUFFICIENT_SEATS"
        assert rejected.available_seats == 2
        assert rejected.requested_group_size == 3

        declined = await engine.decline(third, reason="Out of policy")
        assert isinstance(declined, Declined)
        assert declined.request.decline_reason == "Out of policy"
        assert declined.request.vehicle_id is None

        view = await engine.ledger.occupancy(vehicle_id)
        assert view.occupied_seats == 4
        assert await _notification_count(session_factory) == 2


class TestWindowScopedOnSql:
    """Seat checks scoped to overlapping trip dates, end to end on SQLite."""

    day = datetime(2026, 5, 4, 8, 0, tzinfo=timezone.utc)

    def times(self, day_offset):
        start = self.day + timedelta(days=day_offset)
        return {"departure_time": start, "arrival_time": start + timedelta(hours=9)}

    def engine(self, sql_store) -> DecisionEngine:
        return DecisionEngine(
            sql_store,
            CapacityLedger(sql_store, window_scoped=True),
            timeout_seconds=5,
        )

    @pytest.mark.asyncio
    async def test_trip_on_another_day_is_accepted(self, session_factory, sql_store):
        vehicle_id = await _seed_vehicle(session_factory, 4)
        await _seed_request(
            session_factory, ["A", "B", "C"], RequestStatus.ACCEPTED, vehicle_id,
            **self.times(0),
        )
        request_id = await _seed_request(
            session_factory, ["D", "E", "F"], **self.times(7)
        )

        result = await self.engine(sql_store).accept(request_id, vehicle_id=vehicle_id)

        assert isinstance(result, Accepted)
        assert (result.occupied_after, result.available_after) == (3, 1)

    @pytest.mark.asyncio
    async def test_trip_on_the_same_day_is_rejected(self, session_factory, sql_store):
        vehicle_id = await _seed_vehicle(session_factory, 4)
        await _seed_request(
            session_factory, ["A", "B", "C"], RequestStatus.ACCEPTED, vehicle_id,
            **self.times(0),
        )
        request_id = await _seed_request(
            session_factory, ["D", "E", "F"], **self.times(0)
        )

        result = await self.engine(sql_store).accept(request_id, vehicle_id=vehicle_id)

        assert isinstance(result, Rejected)
        assert result.reason == "INSUFFICIENT_SEATS"
        assert result.available_seats == 1
        assert result.requested_group_size == 3
        request = await sql_store.get_request(request_id)
        assert request.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_undated_accepted_trip_blocks_every_window(
        self, session_factory, sql_store
    ):
        vehicle_id = await _seed_vehicle(session_factory, 4)
        await _seed_request(
            session_factory, ["A", "B", "C"], RequestStatus.ACCEPTED, vehicle_id
        )
        request_id = await _seed_request(
            session_factory, ["D", "E"], **self.times(30)
        )

        result = await self.engine(sql_store).accept(request_id, vehicle_id=vehicle_id)

        assert isinstance(result, Rejected)
        assert result.available_seats == 1

    @pytest.mark.asyncio
    async def test_undated_request_sees_every_accepted_trip(
        self, session_factory, sql_store
    ):
        vehicle_id = await _seed_vehicle(session_factory, 4)
        await _seed_request(
            session_factory, ["A", "B", "C"], RequestStatus.ACCEPTED, vehicle_id,
            **self.times(0),
        )
        request_id = await _seed_request(session_factory, ["D", "E"])

        result = await self.engine(sql_store).accept(request_id, vehicle_id=vehicle_id)

        assert isinstance(result, Rejected)
        assert result.reason == "INSUFFICIENT_SEATS"
