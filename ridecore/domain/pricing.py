"""
Fare Engine  (Strategy Pattern)
===============================

Formula
-------
Price = max(Minimum, (Base + Distance x Per_KM + ETA x Per_Minute + Extras) x Zone)

* **Base / Per_KM / Per_Minute / Minimum** come from the vehicle-class
  fare table (``VEHICLE_FARES``); new classes are new rows, not new code.
* **Tariff** strategy scales the three rate terms (premium = x1.5).
* **Extras**: +100 when a pet is carried, +50 for a child seat.
* **Zone**: x1.10 when pickup *or* destination lies inside the city box.

All money arithmetic is done in ``Decimal`` and rounded half-to-even to
whole currency units, so the same inputs always produce the same price.

Complexity: O(1) per estimate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal

from .distance import eta_minutes, haversine_km
from .entities import Estimate, Location
from .enums import Tariff, VehicleType

PET_SURCHARGE = Decimal("100")
CHILD_SEAT_SURCHARGE = Decimal("50")
CITY_ZONE_MULTIPLIER = Decimal("1.10")


@dataclass(frozen=True)
class FareSchedule:
    base_fare: Decimal
    per_km: Decimal
    per_minute: Decimal
    minimum_fare: Decimal

    def scaled(self, factor: Decimal) -> FareSchedule:
        """Scale the rate terms; the minimum fare is not affected."""
        return FareSchedule(
            base_fare=self.base_fare * factor,
            per_km=self.per_km * factor,
            per_minute=self.per_minute * factor,
            minimum_fare=self.minimum_fare,
        )


VEHICLE_FARES: dict[VehicleType, FareSchedule] = {
    VehicleType.MOTO: FareSchedule(
        Decimal("300"), Decimal("40"), Decimal("15"), Decimal("500")
    ),
    VehicleType.CAR: FareSchedule(
        Decimal("400"), Decimal("60"), Decimal("20"), Decimal("800")
    ),
    VehicleType.VAN: FareSchedule(
        Decimal("600"), Decimal("80"), Decimal("25"), Decimal("1200")
    ),
}


@dataclass(frozen=True)
class CityZone:
    """Axis-aligned lat/lng box; edges are inside."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, point: Location) -> bool:
        return (
            self.min_lat <= point.latitude <= self.max_lat
            and self.min_lng <= point.longitude <= self.max_lng
        )


CITY_CENTER = CityZone(min_lat=40.15, max_lat=40.25, min_lng=44.45, max_lng=44.60)


# ── Strategy hierarchy ────────────────────────────────────────────────


class TariffStrategy(ABC):
    @abstractmethod
    def apply(self, fares: FareSchedule) -> FareSchedule: ...


class StandardTariff(TariffStrategy):
    def apply(self, fares: FareSchedule) -> FareSchedule:
        return fares


class PremiumTariff(TariffStrategy):
    def __init__(self, multiplier: Decimal = Decimal("1.5")):
        self.multiplier = multiplier

    def apply(self, fares: FareSchedule) -> FareSchedule:
        return fares.scaled(self.multiplier)


TARIFF_STRATEGIES: dict[Tariff, TariffStrategy] = {
    Tariff.STANDARD: StandardTariff(),
    Tariff.PREMIUM: PremiumTariff(),
}


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the lifecycle controller and the API layer."""

    def __init__(
        self,
        fares: dict[VehicleType, FareSchedule] | None = None,
        city_zone: CityZone = CITY_CENTER,
    ):
        self.fares = fares if fares is not None else VEHICLE_FARES
        self.city_zone = city_zone

    def fare_schedule(self, vehicle_type: VehicleType, tariff: Tariff) -> FareSchedule:
        base = self.fares[VehicleType(vehicle_type)]
        return TARIFF_STRATEGIES[Tariff(tariff)].apply(base)

    def calculate_price(
        self,
        distance_km: float,
        eta: int,
        pickup: Location,
        destination: Location,
        vehicle_type: VehicleType = VehicleType.CAR,
        tariff: Tariff = Tariff.STANDARD,
        pet: bool = False,
        child: bool = False,
    ) -> int:
        fares = self.fare_schedule(vehicle_type, tariff)
        price = (
            fares.base_fare
            + Decimal(str(distance_km)) * fares.per_km
            + Decimal(eta) * fares.per_minute
        )
        if pet:
            price += PET_SURCHARGE
        if child:
            price += CHILD_SEAT_SURCHARGE

        if self.city_zone.contains(pickup) or self.city_zone.contains(destination):
            price *= CITY_ZONE_MULTIPLIER

        price = max(price, fares.minimum_fare)
        return int(price.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))

    def estimate(
        self,
        pickup: Location,
        destination: Location,
        vehicle_type: VehicleType = VehicleType.CAR,
        tariff: Tariff = Tariff.STANDARD,
        pet: bool = False,
        child: bool = False,
    ) -> Estimate:
        distance = round(
            haversine_km(
                pickup.latitude, pickup.longitude,
                destination.latitude, destination.longitude,
            ),
            2,
        )
        eta = eta_minutes(distance)
        price = self.calculate_price(
            distance, eta, pickup, destination,
            vehicle_type=vehicle_type, tariff=tariff, pet=pet, child=child,
        )
        return Estimate(distance_km=distance, eta_minutes=eta, price=price)
