"""
SQLAlchemy ORM models.

Tables
------
* ``users``             -- riders and drivers (identity lives elsewhere)
* ``driver_profiles``   -- approval flag and car card per driver
* ``orders``            -- one requested trip / delivery
* ``scheduled_plans``   -- recurring weekly plans, entries as JSON
* ``plan_occurrences``  -- one row per fired (plan, entry, date)

JSON columns (``orders.stops``, ``scheduled_plans.entries``) are decoded
into ``Stop`` / ``PlanEntry`` values through the accessor methods below;
domain code never handles the raw JSON.

Indexes
-------
* **B-Tree** on ``orders.status``, ``orders.user_id``, ``orders.driver_id``
  and ``scheduled_plans.user_id`` for the look-ups the API performs.
* **Unique** ``(plan_id, entry_index, occurrence_date)`` -- the
  scheduler's idempotence boundary.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from .database import Base
from ridecore.domain.entities import PlanEntry, Stop
from ridecore.domain.enums import (
    OrderAction,
    OrderStatus,
    Tariff,
    VehicleType,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values, not the member names.
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    phone = Column(String(32), unique=True, nullable=False)
    name = Column(String(120), nullable=True)
    is_driver = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class DriverProfileModel(Base):
    __tablename__ = "driver_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=False)
    approved = Column(Boolean, default=False, nullable=False)
    car_model = Column(String(80), nullable=True)
    plate_number = Column(String(20), nullable=True)
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(_enum(OrderAction, "orderaction"), default=OrderAction.TAXI, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    pickup = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=True)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    dest_lat = Column(Float, nullable=True)
    dest_lng = Column(Float, nullable=True)
    stops = Column(JSON, nullable=True)

    package_details = Column(Text, nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)

    status = Column(_enum(OrderStatus, "orderstatus"), default=OrderStatus.SEARCHING, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(Text, nullable=True)

    # Driver card, copied from the profile at assignment time
    driver_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    driver_name = Column(String(120), nullable=True)
    driver_phone = Column(String(32), nullable=True)
    driver_car = Column(String(80), nullable=True)
    driver_plate = Column(String(20), nullable=True)

    # Estimates -- always written together
    distance_km = Column(Float, nullable=True)
    eta_minutes = Column(Integer, nullable=True)
    price = Column(Integer, nullable=True)

    payment_method = Column(String(40), nullable=True)
    pet_allowed = Column(Boolean, default=False, nullable=False)
    child_seat = Column(Boolean, default=False, nullable=False)
    tariff = Column(_enum(Tariff, "tariff"), default=Tariff.STANDARD, nullable=False)
    vehicle_type = Column(_enum(VehicleType, "vehicletype"), default=VehicleType.CAR, nullable=False)

    last_lat = Column(Float, nullable=True)
    last_lng = Column(Float, nullable=True)
    last_location_at = Column(DateTime(timezone=True), nullable=True)

    rating = Column(Integer, nullable=True)
    review = Column(Text, nullable=True)

    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_orders_status", "status"),
        Index("idx_orders_user", "user_id"),
        Index("idx_orders_driver", "driver_id"),
    )

    def get_stops(self) -> list[Stop]:
        return [Stop.from_dict(s) for s in (self.stops or [])]

    def set_stops(self, stops: list[Stop]) -> None:
        # Assign a fresh list so the JSON column is flagged dirty.
        self.stops = [s.to_dict() for s in stops] or None


class ScheduledPlanModel(Base):
    __tablename__ = "scheduled_plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    name = Column(String(120), nullable=True)
    entries = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("idx_plans_user", "user_id"),)

    def get_entries(self) -> list[PlanEntry]:
        return [PlanEntry.from_dict(e) for e in (self.entries or [])]


class PlanOccurrenceModel(Base):
    __tablename__ = "plan_occurrences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Uuid, ForeignKey("scheduled_plans.id"), nullable=False)
    entry_index = Column(Integer, nullable=False)
    occurrence_date = Column(Date, nullable=False)
    # Plain column: inserted in the same flush as the order row
    order_id = Column(Uuid, nullable=True)
    executed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "plan_id", "entry_index", "occurrence_date",
            name="uq_plan_occurrence",
        ),
    )
