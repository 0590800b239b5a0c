"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ridecore.domain.entities import OrderDraft, PlanEntry, Stop, TripUpdate
from ridecore.domain.enums import (
    OrderAction,
    OrderStatus,
    Tariff,
    VehicleType,
    Weekday,
)


# ── Shared ────────────────────────────────────────────────────────────


class StopSchema(BaseModel):
    address: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_stop(self) -> Stop:
        return Stop(address=self.address, lat=self.lat, lng=self.lng)


class PlanEntrySchema(BaseModel):
    name: Optional[str] = None
    address: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    day: Weekday
    time: str = Field(..., pattern=r"^\d{1,2}:\d{2}(:\d{2})?$", description="UTC, HH:MM")

    def to_entry(self) -> PlanEntry:
        return PlanEntry(
            name=self.name,
            address=self.address,
            lat=self.lat,
            lng=self.lng,
            day=self.day,
            time=self.time,
        )


# ── Requests ──────────────────────────────────────────────────────────


class EstimateRequest(BaseModel):
    # Coordinates are optional here so a missing one is reported as a
    # domain error (400) rather than a schema error (422).
    pickup_lat: Optional[float] = Field(None, ge=-90, le=90)
    pickup_lng: Optional[float] = Field(None, ge=-180, le=180)
    dest_lat: Optional[float] = Field(None, ge=-90, le=90)
    dest_lng: Optional[float] = Field(None, ge=-180, le=180)
    vehicle_type: VehicleType = VehicleType.CAR
    tariff: Tariff = Tariff.STANDARD
    pet_allowed: bool = False
    child_seat: bool = False


class OrderRequest(EstimateRequest):
    action: OrderAction = OrderAction.TAXI
    pickup: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    stops: Optional[list[StopSchema]] = None
    package_details: Optional[str] = Field(None, max_length=2000)
    scheduled_for: Optional[datetime] = None
    payment_method: Optional[str] = Field(None, max_length=40)

    def to_draft(self) -> OrderDraft:
        return OrderDraft(
            pickup_lat=self.pickup_lat,
            pickup_lng=self.pickup_lng,
            dest_lat=self.dest_lat,
            dest_lng=self.dest_lng,
            action=self.action,
            pickup=self.pickup,
            destination=self.destination,
            stops=tuple(s.to_stop() for s in self.stops or []),
            package_details=self.package_details,
            scheduled_for=self.scheduled_for,
            payment_method=self.payment_method,
            vehicle_type=self.vehicle_type,
            tariff=self.tariff,
            pet_allowed=self.pet_allowed,
            child_seat=self.child_seat,
        )


class AcceptOrderRequest(BaseModel):
    from_lat: float = Field(..., ge=-90, le=90)
    from_lng: float = Field(..., ge=-180, le=180)
    from_address: Optional[str] = Field(None, max_length=255)
    stops: Optional[list[StopSchema]] = None
    payment_method: str = Field(..., max_length=40)
    pet: bool = False
    child: bool = False
    tariff: Tariff = Tariff.STANDARD
    vehicle_type: Optional[VehicleType] = None

    def to_update(self) -> TripUpdate:
        return TripUpdate(
            from_lat=self.from_lat,
            from_lng=self.from_lng,
            payment_method=self.payment_method,
            from_address=self.from_address,
            stops=tuple(s.to_stop() for s in self.stops or []),
            pet=self.pet,
            child=self.child,
            tariff=self.tariff,
            vehicle_type=self.vehicle_type,
        )


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


class LocationUpdate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class CreatePlanRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    entries: list[PlanEntrySchema] = []


# ── Responses ─────────────────────────────────────────────────────────


class EstimateResponse(BaseModel):
    distance_km: float
    eta_minutes: int
    price: int


class OrderResponse(BaseModel):
    id: uuid.UUID
    action: OrderAction
    user_id: uuid.UUID
    status: OrderStatus

    pickup: Optional[str] = None
    destination: Optional[str] = None
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    stops: Optional[list[StopSchema]] = None
    package_details: Optional[str] = None
    scheduled_for: Optional[datetime] = None

    driver_id: Optional[uuid.UUID] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    driver_car: Optional[str] = None
    driver_plate: Optional[str] = None

    distance_km: Optional[float] = None
    eta_minutes: Optional[int] = None
    price: Optional[int] = None

    payment_method: Optional[str] = None
    pet_allowed: bool = False
    child_seat: bool = False
    tariff: Tariff = Tariff.STANDARD
    vehicle_type: VehicleType = VehicleType.CAR

    last_lat: Optional[float] = None
    last_lng: Optional[float] = None

    rating: Optional[int] = None
    review: Optional[str] = None

    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class PlanResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    entries: list[PlanEntrySchema]
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RealtimeStatsResponse(BaseModel):
    active_connections: int
    connections_by_role: dict[str, int]
    messages_sent: int


class HealthResponse(BaseModel):
    status: str = "ok"
