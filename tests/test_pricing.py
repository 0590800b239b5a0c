"""Unit tests for the fare engine and distance helpers."""

import math
from decimal import Decimal

import pytest

from ridecore.domain.distance import eta_minutes, haversine_km
from ridecore.domain.entities import Location
from ridecore.domain.enums import Tariff, VehicleType
from ridecore.domain.pricing import (
    CITY_CENTER,
    FareSchedule,
    PremiumTariff,
    PricingEngine,
    StandardTariff,
    VEHICLE_FARES,
)

# Outside the city box
SUBURB_A = Location(40.30, 44.70)
SUBURB_B = Location(40.32, 44.75)
# Inside the city box
CENTER = Location(40.1777, 44.5126)


class TestDistance:
    def test_zero_distance(self):
        assert haversine_km(40.18, 44.51, 40.18, 44.51) == 0.0

    def test_symmetric(self):
        there = haversine_km(40.18, 44.51, 40.15, 44.40)
        back = haversine_km(40.15, 44.40, 40.18, 44.51)
        assert there == pytest.approx(back)

    def test_one_degree_latitude(self):
        # ~111.19 km per degree on a 6371 km sphere
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)

    def test_eta_rounds_up(self):
        assert eta_minutes(0) == 0
        assert eta_minutes(1.0) == 2
        assert eta_minutes(1.01) == 3


class TestTariffStrategies:
    def test_standard_is_identity(self):
        fares = VEHICLE_FARES[VehicleType.CAR]
        assert StandardTariff().apply(fares) == fares

    def test_premium_scales_rates_not_minimum(self):
        fares = PremiumTariff().apply(VEHICLE_FARES[VehicleType.CAR])
        assert fares.base_fare == Decimal("600")
        assert fares.per_km == Decimal("90")
        assert fares.per_minute == Decimal("30")
        assert fares.minimum_fare == Decimal("800")


class TestCityZone:
    def test_center_inside(self):
        assert CITY_CENTER.contains(CENTER)

    def test_edges_are_inside(self):
        assert CITY_CENTER.contains(Location(40.15, 44.45))
        assert CITY_CENTER.contains(Location(40.25, 44.60))

    def test_outside(self):
        assert not CITY_CENTER.contains(Location(40.149, 44.50))
        assert not CITY_CENTER.contains(SUBURB_A)


class TestPricingEngine:
    def setup_method(self):
        self.engine = PricingEngine()

    def test_car_standard_outside_city(self):
        # 400 + 10 * 60 + 20 * 20
        assert self.engine.calculate_price(10.0, 20, SUBURB_A, SUBURB_B) == 1400

    def test_premium(self):
        price = self.engine.calculate_price(
            10.0, 20, SUBURB_A, SUBURB_B, tariff=Tariff.PREMIUM
        )
        assert price == 2100

    def test_pet_and_child_surcharges(self):
        price = self.engine.calculate_price(
            10.0, 20, SUBURB_A, SUBURB_B, pet=True, child=True
        )
        assert price == 1550

    def test_city_multiplier_applies_to_extras(self):
        # (1400 + 100) * 1.10
        price = self.engine.calculate_price(10.0, 20, CENTER, SUBURB_B, pet=True)
        assert price == 1650

    def test_city_multiplier_when_only_destination_inside(self):
        assert self.engine.calculate_price(10.0, 20, SUBURB_A, CENTER) == 1540

    def test_rounds_half_to_even(self):
        # (400 + 10.25 * 60 + 20 * 20) * 1.10 == 1556.5
        assert self.engine.calculate_price(10.25, 20, CENTER, CENTER) == 1556

    @pytest.mark.parametrize(
        "vehicle_type, minimum",
        [(VehicleType.MOTO, 500), (VehicleType.CAR, 800), (VehicleType.VAN, 1200)],
    )
    def test_short_trip_floors_to_class_minimum(self, vehicle_type, minimum):
        price = self.engine.calculate_price(
            0.5, 1, SUBURB_A, SUBURB_B, vehicle_type=vehicle_type
        )
        assert price == minimum

    def test_premium_does_not_raise_minimum(self):
        price = self.engine.calculate_price(
            0.5, 1, SUBURB_A, SUBURB_B, tariff=Tariff.PREMIUM
        )
        assert price == 800

    def test_van_rates(self):
        # 600 + 10 * 80 + 20 * 25
        price = self.engine.calculate_price(
            10.0, 20, SUBURB_A, SUBURB_B, vehicle_type=VehicleType.VAN
        )
        assert price == 1900

    def test_custom_fare_table(self):
        engine = PricingEngine(
            fares={
                VehicleType.CAR: FareSchedule(
                    Decimal("100"), Decimal("10"), Decimal("1"), Decimal("0")
                )
            }
        )
        assert engine.calculate_price(5.0, 10, SUBURB_A, SUBURB_B) == 160


class TestEstimate:
    def setup_method(self):
        self.engine = PricingEngine()

    def test_estimate_is_consistent(self):
        # Republic Square -> Zvartnots airport
        pickup, dest = CENTER, Location(40.1473, 44.3959)
        est = self.engine.estimate(pickup, dest)

        expected_km = round(
            haversine_km(pickup.latitude, pickup.longitude, dest.latitude, dest.longitude), 2
        )
        assert est.distance_km == expected_km
        assert est.eta_minutes == math.ceil(est.distance_km / 0.5)
        assert est.price == self.engine.calculate_price(
            est.distance_km, est.eta_minutes, pickup, dest
        )

    def test_city_pickup_to_suburb(self):
        pickup, dest = Location(40.18, 44.51), Location(40.30, 44.70)
        est = self.engine.estimate(pickup, dest)

        subtotal = (
            Decimal("400")
            + Decimal(str(est.distance_km)) * Decimal("60")
            + Decimal(est.eta_minutes) * Decimal("20")
        )
        expected = int((subtotal * Decimal("1.10")).quantize(Decimal("1")))
        assert est.price == max(expected, 800)
        assert est.price > self.engine.calculate_price(
            est.distance_km, est.eta_minutes, SUBURB_A, SUBURB_B
        )

    def test_estimate_is_deterministic(self):
        dest = Location(40.20, 44.55)
        first = self.engine.estimate(CENTER, dest, VehicleType.VAN, Tariff.PREMIUM, True, True)
        second = self.engine.estimate(CENTER, dest, VehicleType.VAN, Tariff.PREMIUM, True, True)
        assert first == second

    def test_same_point_charges_minimum(self):
        est = self.engine.estimate(SUBURB_A, SUBURB_A, VehicleType.MOTO)
        assert est.distance_km == 0.0
        assert est.eta_minutes == 0
        assert est.price == 500

    def test_price_grows_with_distance(self):
        near = self.engine.estimate(SUBURB_A, Location(40.35, 44.80))
        far = self.engine.estimate(SUBURB_A, Location(40.60, 45.10))
        assert far.price > near.price
