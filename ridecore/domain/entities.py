"""
Domain value objects and lifecycle rules.

Patterns used
-------------
- **State Pattern** on orders: ``check_transition`` enforces the lifecycle
  (SEARCHING -> ASSIGNED -> ON_TRIP -> COMPLETED | CANCELLED).
- Nested JSON values (order stops, plan entries) are decoded into frozen
  dataclasses at the storage boundary and encoded back with ``to_dict``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Optional

from .enums import (
    ORDER_TRANSITIONS,
    OrderAction,
    OrderStatus,
    Tariff,
    VehicleType,
    Weekday,
)
from .errors import InvalidInput, InvalidState


def check_transition(current: OrderStatus, new_status: OrderStatus) -> None:
    """Raise ``InvalidState`` unless *current* -> *new_status* is legal."""
    allowed = ORDER_TRANSITIONS.get(OrderStatus(current), set())
    if new_status not in allowed:
        raise InvalidState(
            f"Cannot transition from {OrderStatus(current).value} "
            f"to {new_status.value}"
        )


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Stop:
    address: str
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stop:
        try:
            return cls(
                address=str(data.get("address") or ""),
                lat=float(data["lat"]),
                lng=float(data["lng"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise InvalidInput(f"Malformed stop: {data!r}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "lat": self.lat, "lng": self.lng}


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` (or ``HH:MM:SS``) into a ``time``."""
    try:
        parts = [int(p) for p in value.split(":")]
        if len(parts) not in (2, 3):
            raise ValueError(value)
        return time(*parts)
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidInput(f"Invalid time of day: {value!r}") from exc


@dataclass(frozen=True)
class PlanEntry:
    """One weekly occurrence of a recurring plan (times are UTC)."""

    address: str
    lat: float
    lng: float
    day: Weekday
    time: str
    name: Optional[str] = None

    def time_of_day(self) -> time:
        return parse_time_of_day(self.time)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanEntry:
        try:
            entry = cls(
                name=data.get("name"),
                address=str(data.get("address") or ""),
                lat=float(data["lat"]),
                lng=float(data["lng"]),
                day=Weekday(str(data["day"]).lower()),
                time=str(data["time"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise InvalidInput(f"Malformed plan entry: {data!r}") from exc
        entry.time_of_day()
        return entry

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "day": self.day.value,
            "time": self.time,
        }


@dataclass(frozen=True)
class Estimate:
    distance_km: float
    eta_minutes: int
    price: int


@dataclass(frozen=True)
class DriverCandidate:
    id: uuid.UUID
    name: Optional[str] = None
    phone: Optional[str] = None
    car: Optional[str] = None
    plate: Optional[str] = None


@dataclass(frozen=True)
class OrderParties:
    """Who receives lifecycle events for an order."""

    rider_id: uuid.UUID
    driver_id: Optional[uuid.UUID] = None


# ── Commands ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OrderDraft:
    """What a caller asks for when creating an order.

    With ``stops`` present, the last stop is the destination and the
    ``dest_*`` fields are ignored.
    """

    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    action: OrderAction = OrderAction.TAXI
    pickup: Optional[str] = None
    destination: Optional[str] = None
    stops: tuple[Stop, ...] = ()
    package_details: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    payment_method: Optional[str] = None
    vehicle_type: VehicleType = VehicleType.CAR
    tariff: Tariff = Tariff.STANDARD
    pet_allowed: bool = False
    child_seat: bool = False


@dataclass(frozen=True)
class TripUpdate:
    """Final geometry, payment and options set when the rider accepts."""

    from_lat: float
    from_lng: float
    payment_method: str
    from_address: Optional[str] = None
    stops: tuple[Stop, ...] = ()
    pet: bool = False
    child: bool = False
    tariff: Tariff = Tariff.STANDARD
    vehicle_type: Optional[VehicleType] = None
