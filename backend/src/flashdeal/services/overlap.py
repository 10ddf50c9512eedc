"""Overlap validation between a proposed deal window and existing deals."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID

from flashdeal.models.enums import RESERVING_STATUSES
from flashdeal.models.flash_deal import FlashDeal
from flashdeal.schemas.flash_deal import FlashDealFilter


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def windows_overlap(
    existing_start: datetime,
    existing_end: datetime,
    proposed_start: datetime,
    proposed_end: datetime,
) -> bool:
    """Closed-interval intersection test.

    Touching endpoints count as overlapping, so two deals can never share an
    exact boundary instant on the same product.
    """
    return as_utc(existing_start) <= as_utc(proposed_end) and as_utc(existing_end) >= as_utc(
        proposed_start
    )


@dataclass(frozen=True)
class OverlapMatch:
    campaign: FlashDeal
    product_id: UUID


class OverlapValidator:
    """Finds a reserving deal whose window collides with a proposal."""

    def __init__(self, campaigns):
        """Initialize overlap validator.

        Args:
            campaigns: Campaign store providing ``find_overlapping(filters)``
        """
        self.campaigns = campaigns

    async def find_overlap(
        self,
        product_ids: Iterable[UUID],
        start_time: datetime,
        end_time: datetime,
        exclude_campaign_id: UUID | None = None,
    ) -> OverlapMatch | None:
        """Return the first conflicting deal and the product that triggered it.

        Args:
            product_ids: Products in the proposed deal
            start_time: Proposed window start
            end_time: Proposed window end
            exclude_campaign_id: Deal being edited, never conflicts with itself

        Returns:
            OverlapMatch or None if the window is free for every product
        """
        proposed = list(dict.fromkeys(product_ids))
        if not proposed:
            return None

        candidates = await self.campaigns.find_overlapping(
            FlashDealFilter(
                statuses=list(RESERVING_STATUSES),
                product_ids=proposed,
                window_start=start_time,
                window_end=end_time,
                exclude_campaign_id=exclude_campaign_id,
            )
        )

        for campaign in candidates:
            if exclude_campaign_id is not None and campaign.campaign_id == exclude_campaign_id:
                continue
            if campaign.deleted_at is not None or campaign.status not in RESERVING_STATUSES:
                continue
            if not windows_overlap(campaign.start_time, campaign.end_time, start_time, end_time):
                continue
            claimed = set(campaign.product_ids)
            for product_id in proposed:
                if product_id in claimed:
                    return OverlapMatch(campaign=campaign, product_id=product_id)
        return None
