"""
Concurrency safety tests.

Demonstrates:
1. Distributed lock prevents simultaneous acquire and only releases its own token.
2. A booking whose write lock is held elsewhere is refused with 409 and left untouched.
3. Transitions are checked against the persisted status, not the caller's view.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from src.infrastructure.locks import DistributedLock, LockNotAcquired
from tests.conftest import ADMIN, DRIVER, DRIVER_ID, FakeRedis


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval_with_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args.args[1:] == (1, "lock:test-key", lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(RuntimeError, match="Could not acquire lock"):
            async with lock:
                pass

    @pytest.mark.asyncio
    async def test_booking_locks_are_per_booking(self):
        redis = FakeRedis()
        first = DistributedLock.for_booking(redis, 1)
        second = DistributedLock.for_booking(redis, 1)
        other = DistributedLock.for_booking(redis, 2)

        assert await first.acquire()
        assert not await second.acquire()
        assert await other.acquire()

        # Releasing with a foreign token leaves the holder's lock in place.
        await second.release()
        assert redis.store["lock:booking:1"] == first.token

        await first.release()
        assert await second.acquire()

    @pytest.mark.asyncio
    async def test_context_manager_releases(self):
        redis = FakeRedis()
        async with DistributedLock.for_booking(redis, 7):
            assert "lock:booking:7" in redis.store
            with pytest.raises(LockNotAcquired):
                async with DistributedLock.for_booking(redis, 7):
                    pass
        assert "lock:booking:7" not in redis.store


class TestLockedBookingWrites:
    @pytest.mark.asyncio
    async def test_held_lock_returns_409(self, client: AsyncClient, make_booking, fake_redis):
        booking_id = await make_booking("CREATED")
        fake_redis.store[f"lock:booking:{booking_id}"] = "someone-else"

        resp = await client.patch(
            f"/api/v1/admin/bookings/{booking_id}/assign",
            json={"driver_id": DRIVER_ID},
            headers=ADMIN,
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == f"Booking {booking_id} is being updated by another request"
        assert fake_redis.store == {f"lock:booking:{booking_id}": "someone-else"}

        resp = await client.get(f"/api/v1/bookings/{booking_id}", headers=ADMIN)
        assert resp.json()["status"] == "CREATED"
        assert resp.json()["driver_id"] is None

    @pytest.mark.asyncio
    async def test_lock_is_released_after_write(self, client: AsyncClient, make_booking, fake_redis):
        booking_id = await make_booking("CREATED")
        resp = await client.patch(
            f"/api/v1/admin/bookings/{booking_id}/assign",
            json={"driver_id": DRIVER_ID},
            headers=ADMIN,
        )
        assert resp.status_code == 200
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_lock_is_released_after_refusal(self, client: AsyncClient, make_booking, fake_redis):
        booking_id = await make_booking("CREATED")
        resp = await client.patch(
            f"/api/v1/admin/bookings/{booking_id}/refund", headers=ADMIN
        )
        assert resp.status_code == 400
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_admin_cancel_then_driver_start_is_refused(
        self, client: AsyncClient, make_booking
    ):
        """The second writer sees the committed CANCELLED, not the ASSIGNED it last read."""
        booking_id = await make_booking("ASSIGNED", driver_id=DRIVER_ID)

        resp = await client.get(f"/api/v1/driver/bookings/{booking_id}", headers=DRIVER)
        assert resp.json()["allowed_actions"] == ["START", "CANCEL"]

        resp = await client.patch(
            f"/api/v1/admin/bookings/{booking_id}/cancel", headers=ADMIN
        )
        assert resp.status_code == 200

        resp = await client.patch(
            f"/api/v1/driver/bookings/{booking_id}/start", headers=DRIVER
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == (
            "Invalid status transition from CANCELLED to IN_PROGRESS."
        )
