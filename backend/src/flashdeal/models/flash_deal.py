"""Flash deal (campaign) aggregate and its line items."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flashdeal.core.database import Base
from flashdeal.models.base import TimestampMixin
from flashdeal.models.enums import DealStatus


class FlashDeal(Base, TimestampMixin):
    """Time-bounded promotional campaign over one or more products."""

    __tablename__ = "flash_deals"

    campaign_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    deal_kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    discount_mode: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DealStatus.SCHEDULED.value,
    )

    # Visibility
    show_on_homepage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    badge_text: Mapped[str | None] = mapped_column(String(100), nullable=True)
    show_countdown: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    eligible_sections: Mapped[List[str]] = mapped_column(
        ARRAY(String(20)),
        nullable=False,
    )

    # Limits
    max_orders_per_user: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    payment_method_restrictions: Mapped[List[str] | None] = mapped_column(
        ARRAY(String(50)),
        nullable=True,
    )
    geo_restrictions: Mapped[List[str] | None] = mapped_column(
        ARRAY(String(50)),
        nullable=True,
    )
    enable_captcha: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Audit
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    paused_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    ended_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Performance metrics, written by the checkout integration
    total_revenue: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    total_units_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_order_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    conversion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Relationships
    line_items: Mapped[List["FlashDealLineItem"]] = relationship(
        "FlashDealLineItem",
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="FlashDealLineItem.position",
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="chk_flash_deal_time"),
        CheckConstraint("priority >= 0", name="chk_flash_deal_priority"),
        CheckConstraint("max_orders_per_user >= 1", name="chk_flash_deal_max_orders"),
        Index("idx_flash_deals_status", "status"),
        Index("idx_flash_deals_time", "start_time", "end_time"),
        Index("idx_flash_deals_deleted_at", "deleted_at"),
        Index("idx_flash_deals_created_at", "created_at"),
    )

    @property
    def product_ids(self) -> list[uuid.UUID]:
        return [item.product_id for item in self.line_items]


class FlashDealLineItem(Base):
    """One product's participation in a flash deal."""

    __tablename__ = "flash_deal_line_items"

    line_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("flash_deals.campaign_id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.product_id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    deal_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    deal_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    initial_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    sold_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_quantity_per_user: Mapped[int] = mapped_column(Integer, nullable=False)
    min_order_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    campaign: Mapped["FlashDeal"] = relationship("FlashDeal", back_populates="line_items")

    __table_args__ = (
        UniqueConstraint("campaign_id", "product_id", name="uq_flash_deal_line_items_product"),
        CheckConstraint("base_price > 0", name="chk_line_item_base_price"),
        CheckConstraint("deal_price > 0", name="chk_line_item_deal_price"),
        CheckConstraint(
            "discount_percent IS NULL OR (discount_percent >= 0 AND discount_percent <= 100)",
            name="chk_line_item_discount_percent",
        ),
        CheckConstraint("deal_quantity >= 1", name="chk_line_item_deal_quantity"),
        CheckConstraint("initial_stock >= 1", name="chk_line_item_initial_stock"),
        CheckConstraint("sold_quantity >= 0", name="chk_line_item_sold_quantity"),
        Index("idx_flash_deal_line_items_product", "product_id"),
    )
