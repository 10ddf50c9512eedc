"""Pydantic schemas for request/response validation."""

from flashdeal.schemas.flash_deal import (
    FlashDealFilter,
    FlashDealInput,
    FlashDealListResponse,
    FlashDealProjection,
    FlashDealResponse,
    LineItemInput,
    LineItemResponse,
    SyncWarning,
)

__all__ = [
    "LineItemInput",
    "FlashDealInput",
    "FlashDealFilter",
    "FlashDealProjection",
    "LineItemResponse",
    "SyncWarning",
    "FlashDealResponse",
    "FlashDealListResponse",
]
