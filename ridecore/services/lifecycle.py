"""
Order Lifecycle Controller
==========================

Orchestrates every order mutation: pricing, persistence, matching and
the realtime side effects.  The API routes and the recurrence scheduler
go through the same methods.

Ordering per operation
----------------------
1. Validate input and the caller (nothing is written on failure).
2. Take the per-order ``KeyedLock`` and re-read the row ``FOR UPDATE``.
3. Check the transition against ``ORDER_TRANSITIONS`` and mutate.
4. Commit and release the lock.  Only then are realtime events and
   notifications pushed, so a slow peer never holds an order lock.

Realtime and outbound notification failures are logged and swallowed;
they never turn a committed operation into an error.
Once ``request_order`` has committed the new order, a failed match
leaves it ``searching`` instead of failing the request.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ridecore.domain.entities import (
    DriverCandidate,
    Estimate,
    Location,
    OrderDraft,
    TripUpdate,
    check_transition,
)
from ridecore.domain.enums import (
    TERMINAL_STATUSES,
    OrderStatus,
    Tariff,
    VehicleType,
)
from ridecore.domain.errors import (
    Forbidden,
    InvalidInput,
    InvalidState,
    NotFound,
    Unauthorized,
    UpstreamUnavailable,
)
from ridecore.domain.matching import FirstAvailableDriver, MatchingPolicy
from ridecore.domain.pricing import PricingEngine
from ridecore.infrastructure.directory import DriverDirectory, SqlDriverDirectory
from ridecore.infrastructure.locks import KeyedLock, order_locks
from ridecore.infrastructure.models import OrderModel
from ridecore.infrastructure.notifier import LoggingNotifier, Notifier
from ridecore.infrastructure.repositories import OrderRepository, UserRepository
from ridecore.realtime.hub import RealtimeHub
from ridecore.realtime.hub import hub as default_hub

logger = logging.getLogger(__name__)

# Realtime event names pushed to clients
EVENT_FINDING = "carFinding"
EVENT_FOUND = "carFound"
EVENT_CANCELLED = "orderCancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clear_assignment(order: OrderModel) -> None:
    order.driver_id = None
    order.driver_name = None
    order.driver_phone = None
    order.driver_car = None
    order.driver_plate = None
    order.status = OrderStatus.SEARCHING


def _require_coordinates(*values: Optional[float]) -> None:
    if any(v is None for v in values):
        raise InvalidInput(
            "Coordinates required (pickup_lat, pickup_lng, dest_lat, dest_lng)."
        )


class OrderLifecycle:
    def __init__(
        self,
        session: AsyncSession,
        *,
        hub: RealtimeHub | None = None,
        notifier: Notifier | None = None,
        directory: DriverDirectory | None = None,
        policy: MatchingPolicy | None = None,
        pricing: PricingEngine | None = None,
        locks: KeyedLock | None = None,
    ):
        self.session = session
        self.orders = OrderRepository(session)
        self.users = UserRepository(session)
        self.hub = hub if hub is not None else default_hub
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.directory = directory if directory is not None else SqlDriverDirectory(session)
        self.policy = policy if policy is not None else FirstAvailableDriver()
        self.pricing = pricing if pricing is not None else PricingEngine()
        self.locks = locks if locks is not None else order_locks

    # ── Estimates ─────────────────────────────────────────────────────

    def estimate(
        self,
        pickup_lat: Optional[float],
        pickup_lng: Optional[float],
        dest_lat: Optional[float],
        dest_lng: Optional[float],
        vehicle_type: VehicleType = VehicleType.CAR,
        tariff: Tariff = Tariff.STANDARD,
        pet: bool = False,
        child: bool = False,
    ) -> Estimate:
        """Price a trip without persisting anything."""
        _require_coordinates(pickup_lat, pickup_lng, dest_lat, dest_lng)
        return self.pricing.estimate(
            Location(pickup_lat, pickup_lng),
            Location(dest_lat, dest_lng),
            vehicle_type=vehicle_type,
            tariff=tariff,
            pet=pet,
            child=child,
        )

    def _apply_estimate(self, order: OrderModel) -> None:
        # distance, eta and price are only ever written together
        est = self.estimate(
            order.pickup_lat, order.pickup_lng, order.dest_lat, order.dest_lng,
            vehicle_type=order.vehicle_type,
            tariff=order.tariff,
            pet=order.pet_allowed,
            child=order.child_seat,
        )
        order.distance_km = est.distance_km
        order.eta_minutes = est.eta_minutes
        order.price = est.price

    # ── Operations ────────────────────────────────────────────────────

    async def request_order(
        self, actor_id: Optional[uuid.UUID], draft: OrderDraft
    ) -> OrderModel:
        """
        Create an order and, unless it is deferred, start the driver search.

        A ``scheduled_for`` in the future parks the order in ``scheduled``:
        no match attempt and no realtime event.
        """
        if actor_id is None or await self.users.get_by_id(actor_id) is None:
            raise Unauthorized("Caller identity could not be resolved")

        stops = list(draft.stops)
        dest_lat, dest_lng, destination = draft.dest_lat, draft.dest_lng, draft.destination
        if stops:
            dest_lat, dest_lng, destination = stops[-1].lat, stops[-1].lng, stops[-1].address
        _require_coordinates(draft.pickup_lat, draft.pickup_lng, dest_lat, dest_lng)

        now = _utcnow()
        deferred = (
            draft.scheduled_for is not None and _as_utc(draft.scheduled_for) > now
        )
        order = OrderModel(
            id=uuid.uuid4(),
            action=draft.action,
            user_id=actor_id,
            pickup=draft.pickup,
            destination=destination,
            pickup_lat=draft.pickup_lat,
            pickup_lng=draft.pickup_lng,
            dest_lat=dest_lat,
            dest_lng=dest_lng,
            package_details=draft.package_details,
            scheduled_for=draft.scheduled_for,
            payment_method=draft.payment_method,
            vehicle_type=draft.vehicle_type,
            tariff=draft.tariff,
            pet_allowed=draft.pet_allowed,
            child_seat=draft.child_seat,
            status=OrderStatus.SCHEDULED if deferred else OrderStatus.SEARCHING,
            created_at=now,
        )
        order.set_stops(stops)
        self._apply_estimate(order)

        async with self.locks.hold(order.id):
            await self.orders.create(order)
            await self._commit()
        logger.info("Order %s created (%s)", order.id, order.status.value)
        if deferred:
            return order

        await self._notify(order.id, EVENT_FINDING, {"status": OrderStatus.SEARCHING.value})
        async with self.locks.hold(order.id):
            driver = await self._first_match(order)

        if driver is not None:
            await self._announce_assignment(order, driver)
        return order

    async def accept_order(
        self, actor_id: uuid.UUID, order_id: uuid.UUID, req: TripUpdate
    ) -> OrderModel:
        """Finalize geometry, payment and options; re-price; try to match."""
        driver = None
        async with self.locks.hold(order_id):
            order = await self._load_for_update(order_id)
            if order.user_id != actor_id:
                raise Forbidden("Only the requester can accept the order")
            if OrderStatus(order.status) not in (OrderStatus.SEARCHING, OrderStatus.ASSIGNED):
                raise InvalidState(
                    f"Cannot accept order in status {OrderStatus(order.status).value}"
                )

            order.pickup_lat = req.from_lat
            order.pickup_lng = req.from_lng
            if req.from_address is not None:
                order.pickup = req.from_address
            if req.stops:
                stops = list(req.stops)
                order.set_stops(stops)
                order.dest_lat, order.dest_lng = stops[-1].lat, stops[-1].lng
                order.destination = stops[-1].address
            order.payment_method = req.payment_method
            order.pet_allowed = req.pet
            order.child_seat = req.child
            order.tariff = req.tariff
            if req.vehicle_type is not None:
                order.vehicle_type = req.vehicle_type
            self._apply_estimate(order)

            if order.driver_id is None:
                driver = await self._match(order)
            await self._commit()

        if driver is not None:
            await self._announce_assignment(order, driver)
        return order

    async def cancel_order(
        self, actor_id: uuid.UUID, order_id: uuid.UUID, reason: Optional[str] = None
    ) -> OrderModel:
        """Cancel a non-terminal order; terminal orders raise ``InvalidState``."""
        async with self.locks.hold(order_id):
            order = await self._load_for_update(order_id)
            self._require_party(order, actor_id)
            check_transition(order.status, OrderStatus.CANCELLED)

            order.status = OrderStatus.CANCELLED
            order.cancelled_at = _utcnow()
            order.cancel_reason = reason
            await self._commit()
            logger.info("Order %s cancelled by %s", order_id, actor_id)

        await self._notify(
            order.id,
            EVENT_CANCELLED,
            {"reason": reason, "cancelledBy": str(actor_id)},
        )
        return order

    async def driver_accept(
        self, actor_id: uuid.UUID, order_id: uuid.UUID
    ) -> OrderModel:
        async with self.locks.hold(order_id):
            order = await self._load_for_update(order_id)
            check_transition(order.status, OrderStatus.ON_TRIP)
            if order.driver_id != actor_id:
                raise Forbidden("Only the assigned driver can start the trip")

            order.status = OrderStatus.ON_TRIP
            await self._commit()
        return order

    async def complete(self, actor_id: uuid.UUID, order_id: uuid.UUID) -> OrderModel:
        async with self.locks.hold(order_id):
            order = await self._load_for_update(order_id)
            self._require_party(order, actor_id)
            check_transition(order.status, OrderStatus.COMPLETED)

            order.status = OrderStatus.COMPLETED
            order.completed_at = _utcnow()
            await self._commit()
            logger.info("Order %s completed", order_id)
        return order

    async def rate(
        self,
        actor_id: uuid.UUID,
        order_id: uuid.UUID,
        score: int,
        review: Optional[str] = None,
    ) -> OrderModel:
        if not 1 <= score <= 5:
            raise InvalidInput("Rating must be between 1 and 5")

        async with self.locks.hold(order_id):
            order = await self._load_for_update(order_id)
            if order.user_id != actor_id:
                raise Forbidden("Only the requester can rate the order")
            if OrderStatus(order.status) != OrderStatus.COMPLETED:
                raise InvalidState("Can rate only completed orders")
            if order.rating is not None:
                raise InvalidState("Order has already been rated")

            order.rating = score
            order.review = review
            await self._commit()
        return order

    async def update_location(
        self, actor_id: uuid.UUID, order_id: uuid.UUID, lat: float, lng: float
    ) -> OrderModel:
        """Store the sender's position on the order and relay it to the other party."""
        async with self.locks.hold(order_id):
            order = await self._load_for_update(order_id)
            self._require_party(order, actor_id)
            if OrderStatus(order.status) in TERMINAL_STATUSES:
                raise InvalidState("Order is no longer active")

            order.last_lat = lat
            order.last_lng = lng
            order.last_location_at = _utcnow()
            await self._commit()

        try:
            await self.hub.broadcast_location(order.id, actor_id, lat, lng)
        except Exception:
            logger.warning("Location relay for order %s failed", order.id, exc_info=True)
        return order

    async def get_order(self, actor_id: uuid.UUID, order_id: uuid.UUID) -> OrderModel:
        order = await self.orders.get_by_id(order_id)
        if order is None:
            raise NotFound("Order not found")
        self._require_party(order, actor_id)
        return order

    # ── Internals ─────────────────────────────────────────────────────

    async def _load_for_update(self, order_id: uuid.UUID) -> OrderModel:
        order = await self.orders.get_for_update(order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    @staticmethod
    def _require_party(order: OrderModel, actor_id: uuid.UUID) -> None:
        if actor_id not in (order.user_id, order.driver_id):
            raise Forbidden("Not a party to this order")

    async def _match(self, order: OrderModel) -> Optional[DriverCandidate]:
        """Attach the policy's pick to *order*; the caller commits."""
        candidates = await self.directory.candidates()
        driver = self.policy.select(candidates)
        if driver is None:
            logger.info("No driver available for order %s", order.id)
            return None

        check_transition(order.status, OrderStatus.ASSIGNED)
        order.driver_id = driver.id
        order.driver_name = driver.name
        order.driver_phone = driver.phone
        order.driver_car = driver.car
        order.driver_plate = driver.plate
        order.status = OrderStatus.ASSIGNED
        logger.info("Order %s assigned to driver %s", order.id, driver.id)
        return driver

    async def _first_match(self, order: OrderModel) -> Optional[DriverCandidate]:
        """
        Match a freshly committed order.

        The order already exists, so a store or directory outage here is
        not reported to the caller: the assignment is discarded and the
        order is returned still ``searching``.  A concurrent cancel that
        landed first is left alone.
        """
        try:
            current = await self._load_for_update(order.id)
            if OrderStatus(current.status) != OrderStatus.SEARCHING:
                return None
            driver = await self._match(current)
            if driver is not None:
                await self.session.commit()
            return driver
        except (UpstreamUnavailable, OperationalError):
            logger.warning(
                "Matching for order %s failed; it stays searching", order.id, exc_info=True
            )
            # Detach first so the rollback does not expire the returned row
            self.session.expunge(order)
            await self.session.rollback()
            _clear_assignment(order)
            return None

    async def _announce_assignment(
        self, order: OrderModel, driver: DriverCandidate
    ) -> None:
        await self._notify(
            order.id,
            EVENT_FOUND,
            {
                "driver": {
                    "id": str(driver.id),
                    "name": driver.name,
                    "phone": driver.phone,
                    "car": driver.car,
                    "plate": driver.plate,
                }
            },
        )
        try:
            await self.notifier.send(
                driver.id,
                "New order",
                f"Pickup at {order.pickup or 'pinned location'}, fare {order.price}",
            )
        except Exception:
            logger.warning("Driver notification for order %s failed", order.id, exc_info=True)

    async def _notify(self, order_id: uuid.UUID, event: str, payload: dict[str, Any]) -> None:
        try:
            await self.hub.notify(order_id, event, payload)
        except Exception:
            logger.warning("Realtime %s for order %s failed", event, order_id, exc_info=True)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except OperationalError as exc:
            await self.session.rollback()
            raise UpstreamUnavailable("Order store unavailable") from exc
