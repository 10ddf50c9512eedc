"""Business logic services."""

from flashdeal.services.flash_deal_service import FlashDealService
from flashdeal.services.flash_deal_store import FlashDealStore
from flashdeal.services.product_service import ProductService
from flashdeal.services.redis_service import RedisService

__all__ = [
    "FlashDealService",
    "FlashDealStore",
    "ProductService",
    "RedisService",
]
