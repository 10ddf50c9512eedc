"""SQLAlchemy ORM models."""

from flashdeal.models.base import TimestampMixin
from flashdeal.models.flash_deal import FlashDeal, FlashDealLineItem
from flashdeal.models.product import Product

__all__ = [
    "TimestampMixin",
    "Product",
    "FlashDeal",
    "FlashDealLineItem",
]
