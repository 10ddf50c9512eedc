"""Flash deal schemas for request/response validation."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from flashdeal.core.config import settings
from flashdeal.models.enums import DealKind, DealStatus, DiscountMode, EligibleSection


class LineItemInput(BaseModel):
    """One product's pricing and quantities inside a flash deal request."""

    product_id: UUID
    base_price: Decimal = Field(..., gt=0, decimal_places=2)
    deal_price: Decimal = Field(..., gt=0, decimal_places=2)
    discount_percent: float | None = Field(None, ge=0, le=100)
    deal_quantity: int = Field(..., ge=1)
    initial_stock: int = Field(..., ge=1)
    max_quantity_per_user: int = Field(..., ge=1)
    min_order_quantity: int = Field(1, ge=1)


class FlashDealInput(BaseModel):
    """Schema for flash deal create and edit requests."""

    title: str = Field(..., min_length=1, max_length=255)
    deal_kind: DealKind
    discount_mode: DiscountMode
    line_items: list[LineItemInput] = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime

    show_on_homepage: bool = False
    priority: int = Field(0, ge=0)
    badge_text: str | None = Field(None, max_length=100)
    show_countdown: bool = True
    eligible_sections: list[EligibleSection] = Field(
        default_factory=lambda: [EligibleSection.HOMEPAGE],
        min_length=1,
    )

    max_orders_per_user: int = Field(1, ge=1)
    payment_method_restrictions: list[str] | None = None
    geo_restrictions: list[str] | None = None
    enable_captcha: bool = False

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("timestamps must carry a timezone offset")
        return value

    @model_validator(mode="after")
    def check_window_and_items(self) -> "FlashDealInput":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        min_duration = timedelta(minutes=settings.FLASH_DEAL_MIN_DURATION_MINUTES)
        if self.end_time - self.start_time < min_duration:
            raise ValueError(
                f"deal duration must be at least {settings.FLASH_DEAL_MIN_DURATION_MINUTES} minutes"
            )

        seen: set[UUID] = set()
        for item in self.line_items:
            if item.product_id in seen:
                raise ValueError(f"product {item.product_id} appears more than once")
            seen.add(item.product_id)
        return self

    @property
    def product_ids(self) -> list[UUID]:
        return [item.product_id for item in self.line_items]


class FlashDealFilter(BaseModel):
    """Query parameters for campaign lookups.

    Every field is optional; unset fields do not constrain the query.
    """

    statuses: list[DealStatus] | None = None
    deal_kind: DealKind | None = None
    created_by: UUID | None = None
    start_from: datetime | None = None
    start_to: datetime | None = None
    product_ids: list[UUID] | None = None
    window_start: datetime | None = None
    window_end: datetime | None = None
    exclude_campaign_id: UUID | None = None
    include_deleted: bool = False


class FlashDealProjection(BaseModel):
    """Denormalized "deal is live" view written onto a catalog item."""

    campaign_id: UUID
    deal_price: Decimal
    discount_percent: float | None = None
    start_at: datetime
    end_at: datetime
    max_quantity: int
    sold_quantity: int = 0
    priority: int = 0
    created_by: UUID | None = None


class LineItemResponse(BaseModel):
    """Schema for line item response."""

    product_id: UUID
    base_price: Decimal
    deal_price: Decimal
    discount_percent: float | None
    deal_quantity: int
    initial_stock: int
    sold_quantity: int
    max_quantity_per_user: int
    min_order_quantity: int

    model_config = {"from_attributes": True}


class SyncWarning(BaseModel):
    """Projection sync did not reach every product after a committed change."""

    detail: str
    failed_product_ids: list[UUID]
    synced_product_ids: list[UUID]


class FlashDealResponse(BaseModel):
    """Schema for flash deal response."""

    campaign_id: UUID
    title: str
    deal_kind: DealKind
    discount_mode: DiscountMode
    status: DealStatus
    start_time: datetime
    end_time: datetime
    line_items: list[LineItemResponse]

    show_on_homepage: bool
    priority: int
    badge_text: str | None
    show_countdown: bool
    eligible_sections: list[EligibleSection]

    max_orders_per_user: int
    payment_method_restrictions: list[str] | None
    geo_restrictions: list[str] | None
    enable_captcha: bool

    created_by: UUID
    updated_by: UUID | None
    paused_by: UUID | None
    ended_by: UUID | None
    paused_at: datetime | None
    ended_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None

    total_revenue: Decimal
    total_units_sold: int
    average_order_value: Decimal
    conversion_rate: float

    sync_warning: SyncWarning | None = None

    model_config = {"from_attributes": True}


class FlashDealListResponse(BaseModel):
    """Schema for flash deal list response."""

    flash_deals: list[FlashDealResponse]
    total: int
