"""Catalog store: product lookups and flash deal projection writes."""

from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flashdeal.models.product import Product
from flashdeal.schemas.flash_deal import FlashDealProjection
from flashdeal.services.errors import ProductNotFound


def projection_values(projection: FlashDealProjection | None) -> dict[str, Any]:
    """Translate a projection (or its absence) into product column values."""
    if projection is None:
        return {
            "deal_is_active": False,
            "deal_campaign_id": None,
            "deal_price": None,
            "deal_discount_percent": None,
            "deal_start_at": None,
            "deal_end_at": None,
            "deal_max_quantity": None,
            "deal_sold_quantity": 0,
            "deal_priority": 0,
            "deal_created_by": None,
        }
    return {
        "deal_is_active": True,
        "deal_campaign_id": projection.campaign_id,
        "deal_price": projection.deal_price,
        "deal_discount_percent": projection.discount_percent,
        "deal_start_at": projection.start_at,
        "deal_end_at": projection.end_at,
        "deal_max_quantity": projection.max_quantity,
        "deal_sold_quantity": projection.sold_quantity,
        "deal_priority": projection.priority,
        "deal_created_by": projection.created_by,
    }


class ProductService:
    """Service class for catalog item operations used by the flash deal engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, product_id: UUID) -> Product | None:
        """Get a non-deleted product by ID.

        Args:
            product_id: Product UUID

        Returns:
            Product or None if not found
        """
        result = await self.db.execute(
            select(Product)
            .where(Product.product_id == product_id)
            .where(Product.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """Get non-deleted products keyed by ID; missing IDs are simply absent.

        Args:
            product_ids: Product UUIDs

        Returns:
            Mapping of product_id to Product
        """
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}
        result = await self.db.execute(
            select(Product)
            .where(Product.product_id.in_(ids))
            .where(Product.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return {product.product_id: product for product in result.scalars().all()}

    async def update_projection(
        self, product_id: UUID, projection: FlashDealProjection | None
    ) -> None:
        """Overwrite (or clear, when ``projection`` is None) one product's projection.

        Single-row UPDATE committed on its own, so each product is atomic while
        a multi-product sync is not.

        Raises:
            ProductNotFound: Product missing or soft-deleted
        """
        try:
            result = await self.db.execute(
                update(Product)
                .where(Product.product_id == product_id)
                .where(Product.deleted_at.is_(None))
                .values(version=Product.version + 1, **projection_values(projection))
                .returning(Product.product_id)
            )
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        updated = result.first()
        if updated is None:
            raise ProductNotFound([product_id])
        await self.db.commit()
