"""
Realtime Hub
============

Routing table of live connections keyed by ``(actor_id, role)``.

Delivery
--------
* ``notify`` -- lifecycle event for an order, sent to its rider and its
  assigned driver.
* ``broadcast_location`` -- position update, sent to whichever party of
  the order is not the sender.

Both are best-effort and at-most-once: a party without a live connection
is skipped, a failed send drops that connection, nothing is queued or
retried, and no error reaches the caller.

Every send is bounded by ``HUB_SEND_TIMEOUT_SECONDS``.  A peer that stops
reading is treated like a failed send, so a delivery call never waits
longer than one timeout.

Concurrency
-----------
* Registering swaps the table entry in one step; the replaced connection
  is closed in a background task, so ``connect`` never waits on a stale
  peer.
* Each ``LiveConnection`` serialises its own writes with an
  ``asyncio.Lock``; sends to different connections run in parallel.
* Connections are independent of orders and survive order completion.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from .transport import Transport
from ridecore.config import settings
from ridecore.domain.entities import OrderParties
from ridecore.domain.enums import ActorRole
from ridecore.infrastructure.database import async_session_factory
from ridecore.infrastructure.repositories import OrderRepository

logger = logging.getLogger(__name__)

ConnectionKey = tuple[uuid.UUID, ActorRole]
PartyResolver = Callable[[uuid.UUID], Awaitable[Optional[OrderParties]]]
MessageHandler = Callable[["LiveConnection", bytes], Awaitable[None]]


class HubMessage(BaseModel):
    event: str
    order_id: uuid.UUID = Field(serialization_alias="orderId")
    data: dict[str, Any] = Field(default_factory=dict)

    def encode(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


@dataclass(eq=False)
class LiveConnection:
    actor_id: uuid.UUID
    role: ActorRole
    transport: Transport
    connected_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def key(self) -> ConnectionKey:
        return (self.actor_id, self.role)

    async def send(self, data: bytes) -> None:
        async with self._send_lock:
            await self.transport.send(data)


class RealtimeHub:
    def __init__(
        self, resolve_parties: PartyResolver, send_timeout: Optional[float] = None
    ):
        self._resolve_parties = resolve_parties
        self._send_timeout = (
            send_timeout if send_timeout is not None else settings.hub_send_timeout_seconds
        )
        self._connections: dict[ConnectionKey, LiveConnection] = {}
        self._closing: set[asyncio.Task] = set()
        self._messages_sent = 0

    # ── Connection registry ───────────────────────────────────────────

    async def connect(
        self, actor_id: uuid.UUID, role: ActorRole, transport: Transport
    ) -> LiveConnection:
        """Register *transport* as the current connection for the pair."""
        conn = LiveConnection(actor_id=actor_id, role=ActorRole(role), transport=transport)
        previous = self._connections.get(conn.key)
        self._connections[conn.key] = conn

        if previous is not None:
            self._close_later(previous)

        logger.info("Connected %s %s", conn.role.value, actor_id)
        return conn

    def disconnect(self, conn: LiveConnection) -> None:
        """Forget *conn* unless it has already been replaced."""
        if self._connections.get(conn.key) is conn:
            del self._connections[conn.key]
            logger.info("Disconnected %s %s", conn.role.value, conn.actor_id)

    def get(self, actor_id: uuid.UUID, role: ActorRole) -> Optional[LiveConnection]:
        return self._connections.get((actor_id, ActorRole(role)))

    async def serve(self, conn: LiveConnection, on_message: MessageHandler) -> None:
        """Pump inbound frames into *on_message* until the peer goes away."""
        try:
            while True:
                data = await conn.transport.receive()
                if data is None:
                    break
                try:
                    await on_message(conn, data)
                except Exception:
                    logger.warning(
                        "Inbound frame from %s %s rejected",
                        conn.role.value, conn.actor_id, exc_info=True,
                    )
        finally:
            self.disconnect(conn)

    async def shutdown(self) -> None:
        conns = list(self._connections.values())
        self._connections.clear()
        await asyncio.gather(*(self._close(c) for c in conns))
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    # ── Delivery ──────────────────────────────────────────────────────

    async def notify(
        self, order_id: uuid.UUID, event: str, payload: dict[str, Any] | None = None
    ) -> int:
        """Send *event* to the order's rider and driver.  Returns deliveries."""
        parties = await self._parties(order_id)
        if parties is None:
            return 0

        message = HubMessage(event=event, order_id=order_id, data=payload or {}).encode()
        targets = [(parties.rider_id, ActorRole.RIDER)]
        if parties.driver_id is not None:
            targets.append((parties.driver_id, ActorRole.DRIVER))

        results = await asyncio.gather(
            *(self._deliver(actor_id, role, message) for actor_id, role in targets)
        )
        return sum(results)

    async def broadcast_location(
        self, order_id: uuid.UUID, sender_id: uuid.UUID, lat: float, lng: float
    ) -> int:
        parties = await self._parties(order_id)
        if parties is None:
            return 0

        if sender_id == parties.rider_id:
            target = (parties.driver_id, ActorRole.DRIVER)
        elif sender_id == parties.driver_id:
            target = (parties.rider_id, ActorRole.RIDER)
        else:
            logger.warning("Location for order %s from non-party %s", order_id, sender_id)
            return 0
        if target[0] is None:
            return 0

        message = HubMessage(
            event="location",
            order_id=order_id,
            data={"lat": lat, "lng": lng, "senderId": str(sender_id)},
        ).encode()
        return int(await self._deliver(target[0], target[1], message))

    def stats(self) -> dict[str, Any]:
        by_role: dict[str, int] = {role.value: 0 for role in ActorRole}
        for _, role in self._connections:
            by_role[role.value] += 1
        return {
            "active_connections": len(self._connections),
            "connections_by_role": by_role,
            "messages_sent": self._messages_sent,
        }

    # ── Internals ─────────────────────────────────────────────────────

    async def _parties(self, order_id: uuid.UUID) -> Optional[OrderParties]:
        try:
            parties = await self._resolve_parties(order_id)
        except Exception:
            logger.warning("Could not resolve parties of order %s", order_id, exc_info=True)
            return None
        if parties is None:
            logger.debug("Order %s not found; nothing to deliver", order_id)
        return parties

    async def _deliver(self, actor_id: uuid.UUID, role: ActorRole, data: bytes) -> bool:
        conn = self._connections.get((actor_id, role))
        if conn is None:
            return False
        try:
            await asyncio.wait_for(conn.send(data), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Send to %s %s timed out after %ss; dropping connection",
                role.value, actor_id, self._send_timeout,
            )
        except Exception:
            logger.warning("Send to %s %s failed; dropping connection", role.value, actor_id, exc_info=True)
        else:
            self._messages_sent += 1
            return True

        self.disconnect(conn)
        self._close_later(conn)
        return False

    def _close_later(self, conn: LiveConnection) -> None:
        task = asyncio.create_task(self._close(conn))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, conn: LiveConnection) -> None:
        try:
            await asyncio.wait_for(conn.transport.close(), timeout=self._send_timeout)
        except Exception:
            logger.debug("Closing stale connection %s failed", conn.key, exc_info=True)


async def resolve_order_parties(order_id: uuid.UUID) -> Optional[OrderParties]:
    async with async_session_factory() as session:
        return await OrderRepository(session).get_parties(order_id)


# Process-wide instance
hub = RealtimeHub(resolve_order_parties)
