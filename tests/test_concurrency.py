"""
Concurrency safety tests.

Demonstrates:
1. ``KeyedLock`` serialises work on the same order and never blocks
   unrelated orders.
2. Two racing cancellations of one order: exactly one wins.
3. Distributed lock prevents simultaneous acquire.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from ridecore.domain.entities import OrderDraft
from ridecore.domain.enums import OrderStatus
from ridecore.domain.errors import InvalidState
from ridecore.infrastructure.locks import DistributedLock, KeyedLock
from ridecore.services.lifecycle import OrderLifecycle
from tests.conftest import add_rider


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_is_serialised(self):
        locks = KeyedLock()
        trace: list[str] = []

        async def work(name: str) -> None:
            async with locks.hold("order-1"):
                trace.append(f"{name}:in")
                await asyncio.sleep(0.01)
                trace.append(f"{name}:out")

        await asyncio.gather(work("a"), work("b"))

        assert trace in (
            ["a:in", "a:out", "b:in", "b:out"],
            ["b:in", "b:out", "a:in", "a:out"],
        )

    @pytest.mark.asyncio
    async def test_different_keys_do_not_contend(self):
        locks = KeyedLock()
        release = asyncio.Event()

        async def hold_first() -> None:
            async with locks.hold("order-1"):
                await release.wait()

        holder = asyncio.create_task(hold_first())
        await asyncio.sleep(0)

        async with locks.hold("order-2"):
            assert len(locks) == 2

        release.set()
        await holder

    @pytest.mark.asyncio
    async def test_entries_are_dropped_when_idle(self):
        locks = KeyedLock()
        async with locks.hold("order-1"):
            assert len(locks) == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            async with locks.hold("order-1"):
                raise RuntimeError("boom")

        # A fresh holder must not block
        await asyncio.wait_for(_enter(locks, "order-1"), timeout=1)
        assert len(locks) == 0


async def _enter(locks: KeyedLock, key: str) -> None:
    async with locks.hold(key):
        pass


class TestRacingCancellations:
    @pytest.mark.asyncio
    async def test_exactly_one_cancel_wins(self, session_factory, hub):
        locks = KeyedLock()
        async with session_factory() as setup:
            rider = await add_rider(setup)
            order = await OrderLifecycle(setup, hub=hub, locks=locks).request_order(
                rider.id,
                OrderDraft(pickup_lat=40.1777, pickup_lng=44.5126, dest_lat=40.1911, dest_lng=44.5152),
            )

        async def cancel(reason: str):
            async with session_factory() as session:
                return await OrderLifecycle(session, hub=hub, locks=locks).cancel_order(
                    rider.id, order.id, reason
                )

        results = await asyncio.gather(
            cancel("first"), cancel("second"), return_exceptions=True
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, InvalidState)]
        assert len(winners) == 1 and len(losers) == 1
        assert winners[0].status == OrderStatus.CANCELLED
        assert hub.event_names().count("orderCancelled") == 1


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "plan_scheduler", ttl_seconds=60)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:plan_scheduler", lock.token, nx=True, ex=60
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "plan_scheduler", ttl_seconds=60)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "plan_scheduler", ttl_seconds=60)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "plan_scheduler", ttl_seconds=60)
        with pytest.raises(RuntimeError, match="Could not acquire lock"):
            async with lock:
                pass
