"""API dependencies for database access, identity context and engine wiring."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from flashdeal.core.config import settings
from flashdeal.core.database import get_db
from flashdeal.core.redis import get_redis
from flashdeal.services.flash_deal_service import FlashDealService
from flashdeal.services.flash_deal_store import FlashDealStore
from flashdeal.services.product_lock import ProductLockManager
from flashdeal.services.product_service import ProductService
from flashdeal.services.redis_service import RedisService


async def get_actor_id(
    x_actor_id: Annotated[UUID, Header(description="Acting admin user ID")],
) -> UUID:
    """Identity context for audit fields.

    Authentication happens upstream; the gateway forwards the user ID.
    """
    return x_actor_id


async def get_redis_service() -> RedisService:
    """Get RedisService instance with shared Redis connection pool."""
    redis = await get_redis()
    return RedisService(redis)


def build_flash_deal_service(db: AsyncSession, redis_service: RedisService) -> FlashDealService:
    """Wire the engine to SQLAlchemy stores and Redis product locks."""
    locks = ProductLockManager(
        redis_service,
        ttl=settings.FLASH_DEAL_LOCK_TTL_SECONDS,
        wait_timeout=settings.FLASH_DEAL_LOCK_WAIT_SECONDS,
    )
    return FlashDealService(FlashDealStore(db), ProductService(db), locks)


async def get_flash_deal_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    redis_service: Annotated[RedisService, Depends(get_redis_service)],
) -> FlashDealService:
    """Get FlashDealService instance with injected dependencies."""
    return build_flash_deal_service(db, redis_service)


# Type aliases for cleaner dependency injection
ActorId = Annotated[UUID, Depends(get_actor_id)]
FlashDealServiceDep = Annotated[FlashDealService, Depends(get_flash_deal_service)]
