"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 4 sample riders
  - 4 sample drivers (3 approved, 1 pending review)
  - 3 sample orders (searching, assigned, completed)
  - 1 weekly commute plan
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from ridecore.domain.entities import Location, PlanEntry
from ridecore.domain.enums import OrderStatus, Weekday
from ridecore.domain.pricing import PricingEngine
from ridecore.infrastructure.database import async_session_factory, engine
from ridecore.infrastructure.models import (
    DriverProfileModel,
    OrderModel,
    ScheduledPlanModel,
    UserModel,
)

# Republic Square, Yerevan (inside the city-centre zone)
CENTER_LAT, CENTER_LNG = 40.1777, 44.5126


RIDERS = [
    {"name": "Ani Petrosyan", "phone": "+37491000001"},
    {"name": "Davit Hakobyan", "phone": "+37491000002"},
    {"name": "Mariam Sargsyan", "phone": "+37491000003"},
    {"name": "Tigran Grigoryan", "phone": "+37491000004"},
]

DRIVERS = [
    {"name": "Aram Avetisyan", "phone": "+37493000001", "car": "Toyota Camry", "plate": "35 OO 123", "approved": True},
    {"name": "Narek Vardanyan", "phone": "+37493000002", "car": "Kia K5", "plate": "12 AB 456", "approved": True},
    {"name": "Lilit Harutyunyan", "phone": "+37493000003", "car": "Hyundai Sonata", "plate": "77 XY 789", "approved": True},
    {"name": "Hayk Mkrtchyan", "phone": "+37493000004", "car": "Lada Vesta", "plate": "01 LL 001", "approved": False},
]

TRIPS = [
    # (pickup address, pickup lat/lng, destination address, dest lat/lng)
    ("Republic Square", (40.1777, 44.5126), "Cascade", (40.1911, 44.5152)),
    ("Opera House", (40.1862, 44.5152), "Zvartnots Airport", (40.1473, 44.3959)),
    ("Vernissage", (40.1765, 44.5178), "Yerevan Mall", (40.1582, 44.4960)),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Riders ────────────────────────────────────────────────────
        riders = []
        for r in RIDERS:
            m = UserModel(name=r["name"], phone=r["phone"])
            session.add(m)
            riders.append(m)
        await session.flush()
        print(f"  Created {len(riders)} riders")

        # ── Drivers + profiles ────────────────────────────────────────
        drivers = []
        for d in DRIVERS:
            user = UserModel(name=d["name"], phone=d["phone"], is_driver=True)
            session.add(user)
            await session.flush()
            session.add(
                DriverProfileModel(
                    user_id=user.id,
                    approved=d["approved"],
                    car_model=d["car"],
                    plate_number=d["plate"],
                )
            )
            drivers.append((user, d))
        await session.flush()
        print(f"  Created {len(drivers)} drivers")

        # ── Orders ────────────────────────────────────────────────────
        pricing = PricingEngine()
        now = datetime.now(timezone.utc)
        statuses = [OrderStatus.SEARCHING, OrderStatus.ASSIGNED, OrderStatus.COMPLETED]
        for rider, trip, status in zip(riders, TRIPS, statuses):
            pickup, (plat, plng), dest, (dlat, dlng) = trip
            est = pricing.estimate(Location(plat, plng), Location(dlat, dlng))
            order = OrderModel(
                user_id=rider.id,
                pickup=pickup,
                destination=dest,
                pickup_lat=plat,
                pickup_lng=plng,
                dest_lat=dlat,
                dest_lng=dlng,
                status=status,
                distance_km=est.distance_km,
                eta_minutes=est.eta_minutes,
                price=est.price,
                payment_method="cash",
            )
            if status is not OrderStatus.SEARCHING:
                driver, card = drivers[0]
                order.driver_id = driver.id
                order.driver_name = card["name"]
                order.driver_phone = card["phone"]
                order.driver_car = card["car"]
                order.driver_plate = card["plate"]
            if status is OrderStatus.COMPLETED:
                order.completed_at = now - timedelta(hours=1)
                order.rating = 5
            session.add(order)
        await session.flush()
        print(f"  Created {len(TRIPS)} orders")

        # ── Recurring plan ────────────────────────────────────────────
        commute = [
            PlanEntry("Office, Northern Avenue", 40.1819, 44.5146, day, "08:30", "Commute")
            for day in (Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY)
        ]
        session.add(
            ScheduledPlanModel(
                user_id=riders[3].id,
                name="Weekday commute",
                entries=[e.to_dict() for e in commute],
            )
        )
        print("  Created 1 recurring plan")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
