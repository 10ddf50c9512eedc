"""Catalog item model carrying the denormalized flash deal projection."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from flashdeal.core.database import Base
from flashdeal.models.base import TimestampMixin


class Product(Base, TimestampMixin):
    """Catalog item.

    The ``deal_*`` columns are a cache of the owning flash deal's line item.
    They are written only by the projection synchronizer.
    """

    __tablename__ = "products"

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    stock: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Flash deal projection
    deal_is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    deal_campaign_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )
    deal_price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
    )
    deal_discount_percent: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )
    deal_start_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    deal_end_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    deal_max_quantity: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    deal_sold_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    deal_priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    deal_created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="chk_product_stock_positive"),
        CheckConstraint("price > 0", name="chk_product_price_positive"),
        Index("idx_products_deal_active", "deal_is_active"),
    )
