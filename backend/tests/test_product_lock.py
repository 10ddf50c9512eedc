"""Tests for per-product Redis locks.

Lock discipline:
1. SET NX EX per product key, owner token as value
2. Owner-checked release through a Lua script
3. Sorted acquisition order across a product set
4. Bounded wait, then ProductLocked
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from flashdeal.core import redis as redis_module
from flashdeal.core.config import settings
from flashdeal.services.errors import ProductLocked
from flashdeal.services.product_lock import ProductLockManager
from flashdeal.services.redis_service import RedisService


class TestDistributedLock:
    """Test Redis distributed lock operations."""

    @pytest.mark.asyncio
    async def test_acquire_lock_success(self, mock_redis):
        """Test successful lock acquisition."""
        mock_redis.set = AsyncMock(return_value=True)  # SET NX returns True
        service = RedisService(mock_redis)
        product_id = str(uuid4())

        success, owner_id = await service.acquire_lock(product_id)

        assert success is True
        assert owner_id is not None
        mock_redis.set.assert_called_once()
        call_args = mock_redis.set.call_args
        assert call_args.args[0] == f"lock:product:{product_id}"
        assert call_args.kwargs["nx"] is True
        assert call_args.kwargs["ex"] == 10  # Default TTL

    @pytest.mark.asyncio
    async def test_acquire_lock_failure(self, mock_redis):
        """Test lock acquisition fails when already locked."""
        mock_redis.set = AsyncMock(return_value=None)  # SET NX returns None when key exists
        service = RedisService(mock_redis)

        success, owner_id = await service.acquire_lock(str(uuid4()))

        assert success is False

    @pytest.mark.asyncio
    async def test_acquire_lock_custom_ttl_and_owner(self, mock_redis):
        """Test lock acquisition with custom TTL and owner token."""
        service = RedisService(mock_redis)

        success, owner_id = await service.acquire_lock(str(uuid4()), owner_id="op-1", ttl=5)

        assert success is True
        assert owner_id == "op-1"
        call_args = mock_redis.set.call_args
        assert call_args.args[1] == "op-1"
        assert call_args.kwargs["ex"] == 5

    @pytest.mark.asyncio
    async def test_release_lock_success(self, mock_redis):
        """Test successful lock release by owner."""
        mock_script = AsyncMock(return_value=1)
        mock_redis.register_script = MagicMock(return_value=mock_script)
        service = RedisService(mock_redis)
        product_id = str(uuid4())
        owner_id = str(uuid4())

        result = await service.release_lock(product_id, owner_id)

        assert result is True
        mock_script.assert_awaited_once_with(
            keys=[f"lock:product:{product_id}"], args=[owner_id]
        )

    @pytest.mark.asyncio
    async def test_release_lock_not_owner(self, mock_redis):
        """Test lock release fails when not the owner."""
        mock_redis.register_script = MagicMock(return_value=AsyncMock(return_value=0))
        service = RedisService(mock_redis)

        result = await service.release_lock(str(uuid4()), str(uuid4()))

        assert result is False

    @pytest.mark.asyncio
    async def test_release_script_registered_once(self, mock_redis):
        service = RedisService(mock_redis)

        await service.release_lock(str(uuid4()), "a")
        await service.release_lock(str(uuid4()), "b")

        mock_redis.register_script.assert_called_once_with(RedisService.RELEASE_LOCK_SCRIPT)

    def test_release_lock_script_logic(self):
        """Verify the Lua script only deletes the caller's own lock."""
        script = RedisService.RELEASE_LOCK_SCRIPT

        assert "GET" in script
        assert "DEL" in script
        assert "ARGV[1]" in script  # Owner ID comparison


class TestProductLockManager:
    """Test locking a set of products for one operation."""

    @pytest.mark.asyncio
    async def test_locks_in_sorted_order_with_one_owner(self, mock_redis, lock_manager):
        product_ids = [uuid4() for _ in range(3)]

        async with lock_manager.hold(product_ids) as owner_id:
            keys = [c.args[0] for c in mock_redis.set.call_args_list]
            owners = {c.args[1] for c in mock_redis.set.call_args_list}

        expected = [f"lock:product:{p}" for p in sorted(str(p) for p in product_ids)]
        assert keys == expected
        assert owners == {owner_id}

    @pytest.mark.asyncio
    async def test_duplicate_ids_locked_once(self, mock_redis, lock_manager):
        product_id = uuid4()

        async with lock_manager.hold([product_id, product_id]):
            pass

        assert mock_redis.set.await_count == 1

    @pytest.mark.asyncio
    async def test_releases_in_reverse_order(self, mock_redis, lock_manager):
        script = AsyncMock(return_value=1)
        mock_redis.register_script = MagicMock(return_value=script)
        product_ids = sorted(str(uuid4()) for _ in range(3))

        async with lock_manager.hold(product_ids):
            script.assert_not_awaited()

        released = [c.kwargs["keys"][0] for c in script.await_args_list]
        assert released == [f"lock:product:{p}" for p in reversed(product_ids)]

    @pytest.mark.asyncio
    async def test_releases_when_block_raises(self, mock_redis, lock_manager):
        script = AsyncMock(return_value=1)
        mock_redis.register_script = MagicMock(return_value=script)

        with pytest.raises(RuntimeError):
            async with lock_manager.hold([uuid4(), uuid4()]):
                raise RuntimeError("validation blew up")

        assert script.await_count == 2

    @pytest.mark.asyncio
    async def test_times_out_with_product_locked(self, mock_redis, lock_manager):
        mock_redis.set = AsyncMock(return_value=None)
        product_id = uuid4()

        with pytest.raises(ProductLocked) as exc_info:
            async with lock_manager.hold([product_id]):
                pytest.fail("block must not run without the lock")

        assert exc_info.value.product_id == str(product_id)
        assert mock_redis.set.await_count > 1  # retried until the deadline

    @pytest.mark.asyncio
    async def test_partial_acquisition_released_on_timeout(self, mock_redis, lock_manager):
        free, busy = sorted(str(uuid4()) for _ in range(2))

        async def fake_set(key, value, nx=False, ex=None):
            return True if key.endswith(free) else None

        mock_redis.set = AsyncMock(side_effect=fake_set)
        script = AsyncMock(return_value=1)
        mock_redis.register_script = MagicMock(return_value=script)

        with pytest.raises(ProductLocked) as exc_info:
            async with lock_manager.hold([busy, free]):
                pass

        assert exc_info.value.product_id == busy
        released = [c.kwargs["keys"][0] for c in script.await_args_list]
        assert released == [f"lock:product:{free}"]

    @pytest.mark.asyncio
    async def test_retries_until_lock_frees(self, mock_redis, redis_service):
        mock_redis.set = AsyncMock(side_effect=[None, None, True])
        manager = ProductLockManager(redis_service, wait_timeout=1.0, retry_interval=0.001)

        async with manager.hold([uuid4()]):
            pass

        assert mock_redis.set.await_count == 3

    @pytest.mark.asyncio
    async def test_expired_lock_release_does_not_raise(self, mock_redis, lock_manager):
        mock_redis.register_script = MagicMock(return_value=AsyncMock(return_value=0))

        async with lock_manager.hold([uuid4()]):
            pass


class TestRedisPool:
    """Connection pool sized for lock traffic."""

    def test_pool_uses_configured_limits(self, monkeypatch):
        monkeypatch.setattr(settings, "REDIS_MAX_CONNECTIONS", 7)
        monkeypatch.setattr(settings, "REDIS_SOCKET_TIMEOUT_SECONDS", 1.5)
        monkeypatch.setattr(redis_module, "redis_pool", None)

        pool = redis_module.get_redis_pool()

        assert pool.max_connections == 7
        assert pool.connection_kwargs["socket_timeout"] == 1.5
        assert pool.connection_kwargs["socket_connect_timeout"] == 1.5
