"""
Recurrence Scheduler
====================

Runs every ``SCHEDULER_INTERVAL_SECONDS`` (default 30 s) and turns due
recurring-plan entries into live orders.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance runs a tick at a
  time across multiple API processes.
* The ``plan_occurrences`` unique key ``(plan, entry, date)`` is the
  idempotence boundary.  The guard row and the order are committed in the
  same transaction, so an occurrence either produced both or neither; a
  racing duplicate fails with ``IntegrityError`` and is skipped.

Algorithm per tick
------------------
1. Load all plans.
2. For every entry, find the occurrence inside
   ``[now - grace, now + lookahead]`` (UTC).
3. Skip it if a guard row exists; otherwise add the guard row and create
   the order through ``OrderLifecycle.request_order`` -- the same path as
   an interactive request, including matching and realtime events.

A malformed entry or a failing materialization is logged and skipped;
the rest of the tick carries on.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from ridecore.config import settings
from ridecore.domain.entities import OrderDraft, PlanEntry
from ridecore.domain.enums import OrderAction
from ridecore.domain.errors import InvalidInput
from ridecore.domain.recurrence import due_occurrence
from ridecore.infrastructure.database import async_session_factory
from ridecore.infrastructure.locks import DistributedLock
from ridecore.infrastructure.models import PlanOccurrenceModel
from ridecore.infrastructure.redis_client import get_redis
from ridecore.infrastructure.repositories import (
    PlanOccurrenceRepository,
    PlanRepository,
)
from ridecore.realtime.hub import RealtimeHub
from ridecore.services.lifecycle import OrderLifecycle

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_scheduler_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Plan scheduler started (interval=%ds)", settings.scheduler_interval_seconds
    )


async def stop_scheduler_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Plan scheduler stopped")


async def run_scheduler_tick(
    now: datetime | None = None, *, hub: RealtimeHub | None = None
) -> int:
    """Execute one tick.  Returns the number of orders created."""
    now = now or datetime.now(timezone.utc)
    redis = await get_redis()
    lock = DistributedLock(redis, "plan_scheduler", ttl_seconds=60)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping tick")
        return 0

    created = 0
    try:
        async with async_session_factory() as session:
            plans = [
                (p.id, p.user_id, list(p.entries or []))
                for p in await PlanRepository(session).list_all()
            ]

        grace = timedelta(minutes=settings.scheduler_grace_minutes)
        lookahead = timedelta(minutes=settings.scheduler_lookahead_minutes)

        for plan_id, user_id, raw_entries in plans:
            for index, raw in enumerate(raw_entries):
                try:
                    entry = PlanEntry.from_dict(raw)
                except InvalidInput:
                    logger.warning("Plan %s entry %d is malformed; skipped", plan_id, index)
                    continue

                occurrence = due_occurrence(
                    entry.day, entry.time_of_day(), now, grace, lookahead
                )
                if occurrence is None:
                    continue

                try:
                    if await _materialize(plan_id, user_id, index, entry, occurrence, hub):
                        created += 1
                except Exception:
                    logger.exception(
                        "Materializing plan %s entry %d failed", plan_id, index
                    )
    finally:
        await lock.release()

    if created:
        logger.info("Scheduler tick: %d orders created", created)
    return created


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a tick then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_scheduler_tick()
        except Exception:
            logger.exception("Unhandled error in scheduler tick")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.scheduler_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next tick


async def _materialize(
    plan_id: uuid.UUID,
    user_id: uuid.UUID,
    index: int,
    entry: PlanEntry,
    occurrence: datetime,
    hub: RealtimeHub | None,
) -> bool:
    async with async_session_factory() as session:
        guards = PlanOccurrenceRepository(session)
        if await guards.exists(plan_id, index, occurrence.date()):
            return False

        guard = PlanOccurrenceModel(
            plan_id=plan_id,
            entry_index=index,
            occurrence_date=occurrence.date(),
        )
        # Flushed and committed by request_order together with the order
        session.add(guard)

        try:
            order = await OrderLifecycle(session, hub=hub).request_order(
                user_id, _draft_for(entry)
            )
        except IntegrityError:
            await session.rollback()
            logger.info(
                "Plan %s entry %d on %s already materialized",
                plan_id, index, occurrence.date(),
            )
            return False

        guard.order_id = order.id
        await session.commit()
        logger.info(
            "Plan %s entry %d fired for %s -> order %s",
            plan_id, index, occurrence.isoformat(), order.id,
        )
        return True


def _draft_for(entry: PlanEntry) -> OrderDraft:
    return OrderDraft(
        action=OrderAction.SCHEDULE,
        pickup=entry.address,
        destination=entry.address,
        pickup_lat=entry.lat,
        pickup_lng=entry.lng,
        dest_lat=entry.lat,
        dest_lng=entry.lng,
    )
