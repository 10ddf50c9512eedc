"""Per-product mutual exclusion around flash deal validation and projection writes."""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable
from uuid import UUID

from flashdeal.services.errors import ProductLocked
from flashdeal.services.redis_service import RedisService

logger = logging.getLogger(__name__)


class ProductLockManager:
    """Holds Redis locks on a set of products for the span of one operation.

    Locks are taken in sorted product order so two operations over
    intersecting product sets cannot deadlock each other.
    """

    def __init__(
        self,
        redis_service: RedisService,
        ttl: int = 10,
        wait_timeout: float = 5.0,
        retry_interval: float = 0.05,
    ):
        self.redis_service = redis_service
        self.ttl = ttl
        self.wait_timeout = wait_timeout
        self.retry_interval = retry_interval

    async def _acquire_one(self, product_id: str, owner_id: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_timeout
        while True:
            acquired, _ = await self.redis_service.acquire_lock(
                product_id, owner_id=owner_id, ttl=self.ttl
            )
            if acquired:
                return
            if loop.time() >= deadline:
                raise ProductLocked(product_id)
            await asyncio.sleep(self.retry_interval)

    @asynccontextmanager
    async def hold(self, product_ids: Iterable[UUID]) -> AsyncIterator[str]:
        """Lock every product in ``product_ids`` until the block exits.

        Yields:
            Owner token shared by all locks taken in this block

        Raises:
            ProductLocked: A product stayed locked past the wait timeout
        """
        owner_id = str(uuid.uuid4())
        ordered = sorted({str(product_id) for product_id in product_ids})
        held: list[str] = []
        try:
            for product_id in ordered:
                await self._acquire_one(product_id, owner_id)
                held.append(product_id)
            yield owner_id
        finally:
            for product_id in reversed(held):
                released = await self.redis_service.release_lock(product_id, owner_id)
                if not released:
                    logger.warning(
                        f"Lock for product {product_id} expired before release (owner {owner_id})"
                    )
