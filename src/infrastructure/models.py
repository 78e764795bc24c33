"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``vehicles``       -- fleet units with a fixed seat capacity
* ``requests``       -- travel requests awaiting / holding a decision
* ``notifications``  -- one row per state change, relayed to Redis

Indexes
-------
* **B-Tree** on ``requests(vehicle_id, status)`` for the occupancy sum,
  ``requests.status`` for listings, ``notifications.dispatched_at`` for the
  relay, and a unique ``vehicles.plate_no`` business key.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import NotificationType, RequestStatus


def _values(enum_cls):
    return [member.value for member in enum_cls]


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate_no = Column(String(20), unique=True, nullable=False)
    vehicle_model = Column(String(120), nullable=True)
    capacity = Column(Integer, nullable=False)
    fuel_type = Column(String(20), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_vehicles_archived", "archived_at"),)


class RequestModel(Base):
    __tablename__ = "requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    destination = Column(String(255), nullable=False)
    requesting_office = Column(String(255), nullable=True)
    passenger_names = Column(JSON, nullable=True)
    passenger_count = Column(Integer, default=1, nullable=False)

    departure_time = Column(DateTime(timezone=True), nullable=True)
    arrival_time = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        Enum(RequestStatus, name="request_status", values_callable=_values),
        default=RequestStatus.PENDING,
        nullable=False,
    )
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)
    driver_name = Column(String(120), nullable=True)
    contact_no = Column(String(40), nullable=True)
    vehicle_type = Column(String(120), nullable=True)
    plate_no = Column(String(20), nullable=True)
    reason_for_decline = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_requests_status", "status"),
        Index("idx_requests_vehicle_status", "vehicle_id", "status"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("requests.id"), nullable=True)
    type = Column(
        Enum(NotificationType, name="notification_type", values_callable=_values),
        nullable=False,
    )
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_notifications_request", "request_id"),
        Index("idx_notifications_dispatched", "dispatched_at"),
    )
