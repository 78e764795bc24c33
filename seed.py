"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample vehicles (one archived)
  - 8 sample travel requests (mix of Pending, Accepted, Declined)
  - one status_update notification per decided request
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from src.domain.entities import normalize_plate, passenger_count, status_message
from src.domain.enums import NotificationType, RequestStatus
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import NotificationModel, RequestModel, VehicleModel

NOW = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)


VEHICLES = [
    {"vehicle_model": "Toyota Hiace", "plate_no": "abc 1234", "capacity": 12, "fuel_type": "DIESEL"},
    {"vehicle_model": "Toyota Innova", "plate_no": "nbc 5521", "capacity": 7, "fuel_type": "DIESEL"},
    {"vehicle_model": "Mitsubishi L300", "plate_no": "ter 9012", "capacity": 10, "fuel_type": "BIO-DIESEL"},
    {"vehicle_model": "Toyota Vios", "plate_no": "zxy 3300", "capacity": 4, "fuel_type": "DIESEL"},
    {"vehicle_model": "Ford Everest", "plate_no": "gha 7781", "capacity": 6, "fuel_type": "DIESEL"},
    {"vehicle_model": "Nissan Urvan", "plate_no": "old 0001", "capacity": 14, "fuel_type": "DIESEL", "archived": True},
]

REQUESTS = [
    # (destination, office, names, days_from_now, status, vehicle_index, driver)
    ("Makati", "HR Department", ["Ana Cruz", "Ben Reyes", "Carla Lim"], 1, RequestStatus.ACCEPTED, 0, "Robert Chen"),
    ("Quezon City", "Finance", ["Dario Santos"], 1, RequestStatus.ACCEPTED, 3, "Maria Garcia"),
    ("Pasig", "Engineering", ["Ella Tan", "Fred Uy"], 2, RequestStatus.PENDING, None, None),
    ("Taguig", "Legal", "Gina Co, Hector Lee, Ivy Ong, Jun Sy", 2, RequestStatus.PENDING, None, None),
    ("Manila", "HR Department", ["Karl Dy"], 3, RequestStatus.DECLINED, None, None),
    ("Batangas", "Operations", ["Lea Go", "Mon Yu", "Nina Po", "Oscar Ty", "Pia Ko"], 4, RequestStatus.ACCEPTED, 1, "Ramon Diaz"),
    ("Laguna", "Operations", ["Quin Ang"], 5, RequestStatus.PENDING, None, None),
    ("Cavite", "Procurement", None, 6, RequestStatus.PENDING, None, None),
]


async def seed() -> None:
    async with async_session_factory() as session:
        result = await session.execute(text("SELECT COUNT(*) FROM vehicles"))
        if result.scalar():
            print("Database already seeded -- skipping.")
            return

        vehicles = []
        for v in VEHICLES:
            vehicle = VehicleModel(
                vehicle_model=v["vehicle_model"],
                plate_no=normalize_plate(v["plate_no"]),
                capacity=v["capacity"],
                fuel_type=v["fuel_type"],
                archived_at=NOW if v.get("archived") else None,
            )
            session.add(vehicle)
            vehicles.append(vehicle)
        await session.flush()

        for destination, office, names, days, status, v_idx, driver in REQUESTS:
            name_list = (
                [n.strip() for n in names.split(",")] if isinstance(names, str) else names or []
            )
            vehicle = vehicles[v_idx] if v_idx is not None else None
            request = RequestModel(
                destination=destination,
                requesting_office=office,
                passenger_names=name_list,
                passenger_count=passenger_count(name_list),
                departure_time=NOW + timedelta(days=days, hours=8),
                arrival_time=NOW + timedelta(days=days, hours=17),
                status=status,
                vehicle_id=vehicle.id if vehicle else None,
                driver_name=driver,
                plate_no=vehicle.plate_no if vehicle else None,
                vehicle_type=vehicle.vehicle_model if vehicle else None,
                reason_for_decline=(
                    "No available driver on that date"
                    if status == RequestStatus.DECLINED
                    else None
                ),
            )
            session.add(request)
            await session.flush()

            session.add(
                NotificationModel(
                    request_id=request.id,
                    type=NotificationType.NEW_REQUEST,
                    message=f"New travel request to {destination} from {office}",
                )
            )
            if status != RequestStatus.PENDING:
                session.add(
                    NotificationModel(
                        request_id=request.id,
                        type=NotificationType.STATUS_UPDATE,
                        message=status_message(destination, status),
                    )
                )

        await session.commit()
        print(f"  Created {len(VEHICLES)} vehicles, {len(REQUESTS)} requests")
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
