"""Projection synchronizer: the only writer of product flash deal projections."""

import logging
from typing import Iterable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from flashdeal.middleware.metrics import record_projection_sync_failure
from flashdeal.models.flash_deal import FlashDeal, FlashDealLineItem
from flashdeal.schemas.flash_deal import FlashDealProjection
from flashdeal.services.errors import PartialSyncFailure, ProductNotFound

logger = logging.getLogger(__name__)


def build_projection(campaign: FlashDeal, item: FlashDealLineItem) -> FlashDealProjection:
    """Mirror a campaign's line item onto the product-facing projection."""
    return FlashDealProjection(
        campaign_id=campaign.campaign_id,
        deal_price=item.deal_price,
        discount_percent=item.discount_percent,
        start_at=campaign.start_time,
        end_at=campaign.end_time,
        max_quantity=item.max_quantity_per_user,
        sold_quantity=item.sold_quantity,
        priority=campaign.priority,
        created_by=campaign.updated_by or campaign.created_by,
    )


class ProjectionSynchronizer:
    """Applies and retracts per-product projections for a campaign.

    Writes are atomic per product only. A failed product does not stop the
    rest; failures are reported together as PartialSyncFailure. Everything a
    loop needs is read before the first write, since a failed write rolls the
    session back and expires loaded instances.
    """

    def __init__(self, products):
        """Initialize projection synchronizer.

        Args:
            products: Catalog store providing ``get_by_ids`` and ``update_projection``
        """
        self.products = products

    async def apply(self, campaign: FlashDeal) -> None:
        """Overwrite the projection of every product in the campaign.

        Raises:
            PartialSyncFailure: One or more products could not be written
        """
        campaign_id = campaign.campaign_id
        projections = [
            (item.product_id, build_projection(campaign, item)) for item in campaign.line_items
        ]

        synced: list[UUID] = []
        failed: list[UUID] = []
        for product_id, projection in projections:
            try:
                await self.products.update_projection(product_id, projection)
                synced.append(product_id)
            except (ProductNotFound, SQLAlchemyError) as e:
                logger.error(
                    f"Failed to apply projection of campaign {campaign_id} "
                    f"to product {product_id}: {e}"
                )
                failed.append(product_id)

        if failed:
            record_projection_sync_failure("apply", len(failed))
            raise PartialSyncFailure(failed, synced)

    async def retract(self, campaign_id: UUID, product_ids: Iterable[UUID]) -> None:
        """Clear the projection of every listed product owned by ``campaign_id``.

        Idempotent: missing products and already-cleared projections are
        skipped. A projection owned by another campaign is left in place.

        Raises:
            PartialSyncFailure: One or more products could not be written
        """
        ids = list(dict.fromkeys(product_ids))
        products = await self.products.get_by_ids(ids)

        to_clear: list[UUID] = []
        for product_id in ids:
            product = products.get(product_id)
            if product is None:
                continue
            owner = product.deal_campaign_id
            if owner is not None and owner != campaign_id:
                logger.info(
                    f"Product {product_id} is owned by campaign {owner}, "
                    f"not retracting for {campaign_id}"
                )
                continue
            if not product.deal_is_active and owner is None:
                continue
            to_clear.append(product_id)

        synced: list[UUID] = []
        failed: list[UUID] = []
        for product_id in to_clear:
            try:
                await self.products.update_projection(product_id, None)
                synced.append(product_id)
            except ProductNotFound:
                continue
            except SQLAlchemyError as e:
                logger.error(
                    f"Failed to retract projection of campaign {campaign_id} "
                    f"from product {product_id}: {e}"
                )
                failed.append(product_id)

        if failed:
            record_projection_sync_failure("retract", len(failed))
            raise PartialSyncFailure(failed, synced)
