"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``..._for_update`` variants take row locks
and must be called inside a transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import NotificationModel, RequestModel, VehicleModel
from src.domain.entities import (
    Notification,
    Request,
    TripWindow,
    Vehicle,
    normalize_plate,
    passenger_count,
)
from src.domain.enums import NotificationType, RequestStatus


# ── ORM -> domain mapping ─────────────────────────────────────────────


def request_to_domain(row: RequestModel) -> Request:
    return Request(
        id=row.id,
        user_id=row.user_id,
        destination=row.destination,
        requesting_office=row.requesting_office,
        passenger_names=list(row.passenger_names or []),
        passenger_count=row.passenger_count,
        trip_window=TripWindow(row.departure_time, row.arrival_time),
        status=RequestStatus(row.status),
        vehicle_id=row.vehicle_id,
        driver_name=row.driver_name,
        contact_no=row.contact_no,
        vehicle_type=row.vehicle_type,
        plate_no=row.plate_no,
        decline_reason=row.reason_for_decline,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def vehicle_to_domain(row: VehicleModel) -> Vehicle:
    return Vehicle(
        id=row.id,
        plate_no=row.plate_no,
        vehicle_model=row.vehicle_model,
        total_seats=row.capacity,
        archived_at=row.archived_at,
    )


def notification_to_domain(row: NotificationModel) -> Notification:
    return Notification(
        id=row.id,
        request_id=row.request_id,
        type=NotificationType(row.type),
        message=row.message,
        read=row.read,
        created_at=row.created_at,
        dispatched_at=row.dispatched_at,
    )


# ── Repositories ──────────────────────────────────────────────────────


class RequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_request(
        self,
        *,
        destination: str,
        user_id: int | None = None,
        requesting_office: str | None = None,
        passenger_names: list[str] | str | None = None,
        departure_time: datetime | None = None,
        arrival_time: datetime | None = None,
    ) -> RequestModel:
        """Intake: store a PENDING request with its passenger count fixed."""
        if isinstance(passenger_names, str):
            names = [n.strip() for n in passenger_names.split(",") if n.strip()]
        else:
            names = [n for n in passenger_names or [] if str(n).strip()]
        request = RequestModel(
            user_id=user_id,
            destination=destination,
            requesting_office=requesting_office,
            passenger_names=names,
            passenger_count=passenger_count(names),
            departure_time=departure_time,
            arrival_time=arrival_time,
            status=RequestStatus.PENDING,
        )
        self.session.add(request)
        await self.session.flush()
        return request

    async def get_by_id(self, request_id: int) -> Optional[RequestModel]:
        return await self.session.get(RequestModel, request_id)

    async def get_for_update(self, request_id: int) -> Optional[RequestModel]:
        result = await self.session.execute(
            select(RequestModel)
            .where(RequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def accepted_seats(
        self, vehicle_id: int, window: TripWindow | None = None
    ) -> int:
        query = (
            select(func.coalesce(func.sum(RequestModel.passenger_count), 0))
            .where(RequestModel.vehicle_id == vehicle_id)
            .where(RequestModel.status == RequestStatus.ACCEPTED)
        )
        if window is not None:
            # Closed-interval overlap; NULL bounds are unbounded.
            if window.end is not None:
                query = query.where(
                    or_(
                        RequestModel.departure_time.is_(None),
                        RequestModel.departure_time <= window.end,
                    )
                )
            if window.start is not None:
                query = query.where(
                    or_(
                        RequestModel.arrival_time.is_(None),
                        RequestModel.arrival_time >= window.start,
                    )
                )
        result = await self.session.execute(query)
        return int(result.scalar() or 0)

    async def count_by_status(self, status: RequestStatus) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RequestModel)
            .where(RequestModel.status == status)
        )
        return result.scalar() or 0


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        vehicle.plate_no = normalize_plate(vehicle.plate_no)
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_for_update(self, vehicle_id: int) -> Optional[VehicleModel]:
        """SELECT ... FOR UPDATE: serialises acceptances on one vehicle."""
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_plate(self, plate_no: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(
                and_(
                    VehicleModel.plate_no == normalize_plate(plate_no),
                    VehicleModel.archived_at.is_(None),
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_active(self) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.archived_at.is_(None))
            .order_by(VehicleModel.id)
        )
        return list(result.scalars().all())


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, request_id: int | None, type: NotificationType, message: str
    ) -> NotificationModel:
        notification = NotificationModel(
            request_id=request_id, type=type, message=message, read=False
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_recent(self, limit: int = 50) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: int) -> Optional[NotificationModel]:
        notification = await self.session.get(NotificationModel, notification_id)
        if notification:
            notification.read = True
        return notification

    async def count_unread(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(NotificationModel.read.is_(False))
        )
        return result.scalar() or 0

    async def mark_all_read(self) -> int:
        result = await self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_undispatched(self, limit: int) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.dispatched_at.is_(None))
            .order_by(NotificationModel.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(result.scalars().all())

    async def mark_dispatched(self, notification_ids: list[int]) -> None:
        if not notification_ids:
            return
        await self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.id.in_(notification_ids))
            .values(dispatched_at=datetime.now(timezone.utc))
        )
