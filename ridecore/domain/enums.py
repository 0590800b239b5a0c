"""Domain enumerations and state-transition rules."""

import enum


class OrderStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    SEARCHING = "searching"
    ASSIGNED = "assigned"
    ON_TRIP = "on_trip"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses.
# Scheduled orders have no activation path; they can only be cancelled.
ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.SCHEDULED: {OrderStatus.CANCELLED},
    OrderStatus.SEARCHING: {
        OrderStatus.SEARCHING,
        OrderStatus.ASSIGNED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ASSIGNED: {
        OrderStatus.ASSIGNED,
        OrderStatus.ON_TRIP,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ON_TRIP: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


class OrderAction(str, enum.Enum):
    TAXI = "taxi"
    DELIVERY = "delivery"
    SCHEDULE = "schedule"


class VehicleType(str, enum.Enum):
    MOTO = "moto"
    CAR = "car"
    VAN = "van"


class Tariff(str, enum.Enum):
    STANDARD = "standard"
    PREMIUM = "premium"


class ActorRole(str, enum.Enum):
    RIDER = "rider"
    DRIVER = "driver"


class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        """Python weekday number (Monday == 0)."""
        return list(Weekday).index(self)
