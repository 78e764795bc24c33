"""Initial schema: vehicles, requests, notifications and the availability view.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    request_status = sa.Enum(
        "Pending", "Accepted", "Declined", name="request_status"
    )
    notification_type = sa.Enum(
        "status_update", "new_request", name="notification_type"
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("plate_no", sa.String(20), unique=True, nullable=False),
        sa.Column("vehicle_model", sa.String(120), nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("fuel_type", sa.String(20), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("capacity > 0", name="ck_vehicles_capacity_positive"),
    )
    op.create_index("idx_vehicles_archived", "vehicles", ["archived_at"])

    # ── requests ──────────────────────────────────────────────────────
    op.create_table(
        "requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=True),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("requesting_office", sa.String(255), nullable=True),
        sa.Column("passenger_names", sa.JSON, nullable=True),
        sa.Column("passenger_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status", request_status, nullable=False, server_default="Pending"
        ),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=True
        ),
        sa.Column("driver_name", sa.String(120), nullable=True),
        sa.Column("contact_no", sa.String(40), nullable=True),
        sa.Column("vehicle_type", sa.String(120), nullable=True),
        sa.Column("plate_no", sa.String(20), nullable=True),
        sa.Column("reason_for_decline", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_requests_status", "requests", ["status"])
    op.create_index(
        "idx_requests_vehicle_status", "requests", ["vehicle_id", "status"]
    )

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "request_id", sa.Integer, sa.ForeignKey("requests.id"), nullable=True
        ),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_notifications_request", "notifications", ["request_id"])
    op.create_index(
        "idx_notifications_dispatched", "notifications", ["dispatched_at"]
    )

    # ── car_availability view (read side for dashboards) ──────────────
    op.execute(
        """
        CREATE VIEW car_availability AS
        SELECT v.id AS car_id,
               v.plate_no,
               v.capacity AS total_seats,
               COALESCE(SUM(r.passenger_count), 0) AS occupied_seats,
               GREATEST(v.capacity - COALESCE(SUM(r.passenger_count), 0), 0)
                   AS available_seats
        FROM vehicles v
        LEFT JOIN requests r
               ON r.vehicle_id = v.id AND r.status = 'Accepted'
        WHERE v.archived_at IS NULL
        GROUP BY v.id, v.plate_no, v.capacity
        """
    )


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS car_availability")
    op.drop_table("notifications")
    op.drop_table("requests")
    op.drop_table("vehicles")
    op.execute("DROP TYPE IF EXISTS notification_type")
    op.execute("DROP TYPE IF EXISTS request_status")
