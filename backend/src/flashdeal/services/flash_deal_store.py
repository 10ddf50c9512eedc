"""Campaign store: persistence and queries for flash deals."""

from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flashdeal.models.enums import DealStatus
from flashdeal.models.flash_deal import FlashDeal, FlashDealLineItem
from flashdeal.schemas.flash_deal import FlashDealFilter


def filter_clauses(filters: FlashDealFilter) -> list:
    """Translate a FlashDealFilter into SQLAlchemy WHERE clauses."""
    clauses = []
    if not filters.include_deleted:
        clauses.append(FlashDeal.deleted_at.is_(None))
    if filters.statuses:
        clauses.append(FlashDeal.status.in_([status.value for status in filters.statuses]))
    if filters.deal_kind is not None:
        clauses.append(FlashDeal.deal_kind == filters.deal_kind.value)
    if filters.created_by is not None:
        clauses.append(FlashDeal.created_by == filters.created_by)
    if filters.start_from is not None:
        clauses.append(FlashDeal.start_time >= filters.start_from)
    if filters.start_to is not None:
        clauses.append(FlashDeal.start_time <= filters.start_to)
    if filters.window_end is not None:
        clauses.append(FlashDeal.start_time <= filters.window_end)
    if filters.window_start is not None:
        clauses.append(FlashDeal.end_time >= filters.window_start)
    if filters.exclude_campaign_id is not None:
        clauses.append(FlashDeal.campaign_id != filters.exclude_campaign_id)
    if filters.product_ids:
        clauses.append(
            FlashDeal.line_items.any(FlashDealLineItem.product_id.in_(filters.product_ids))
        )
    return clauses


class FlashDealStore:
    """Service class for flash deal persistence."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, campaign_id: UUID) -> FlashDeal | None:
        """Get a non-deleted flash deal with line items loaded.

        Args:
            campaign_id: Campaign UUID

        Returns:
            FlashDeal or None if not found
        """
        result = await self.db.execute(
            select(FlashDeal)
            .options(selectinload(FlashDeal.line_items))
            .where(FlashDeal.campaign_id == campaign_id)
            .where(FlashDeal.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_overlapping(self, filters: FlashDealFilter) -> list[FlashDeal]:
        """Candidate deals sharing a product and window with the filter."""
        result = await self.db.execute(
            select(FlashDeal)
            .options(selectinload(FlashDeal.line_items))
            .where(*filter_clauses(filters))
            .order_by(FlashDeal.start_time)
        )
        return list(result.scalars().all())

    async def get_all(
        self, filters: FlashDealFilter, skip: int = 0, limit: int = 100
    ) -> tuple[list[FlashDeal], int]:
        """Get flash deals with pagination, newest first.

        Args:
            filters: Query parameters
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (flash deals list, total count)
        """
        clauses = filter_clauses(filters)
        count_result = await self.db.execute(
            select(func.count(FlashDeal.campaign_id)).where(*clauses)
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(FlashDeal)
            .options(selectinload(FlashDeal.line_items))
            .where(*clauses)
            .order_by(FlashDeal.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def find_due_for_activation(self, now: datetime) -> list[FlashDeal]:
        """Scheduled deals whose start time has been reached."""
        result = await self.db.execute(
            select(FlashDeal)
            .where(FlashDeal.deleted_at.is_(None))
            .where(FlashDeal.status == DealStatus.SCHEDULED.value)
            .where(FlashDeal.start_time <= now)
            .order_by(FlashDeal.start_time)
        )
        return list(result.scalars().all())

    async def find_due_for_ending(self, now: datetime) -> list[FlashDeal]:
        """Active or paused deals whose end time has been reached."""
        result = await self.db.execute(
            select(FlashDeal)
            .where(FlashDeal.deleted_at.is_(None))
            .where(
                FlashDeal.status.in_([DealStatus.ACTIVE.value, DealStatus.PAUSED.value])
            )
            .where(FlashDeal.end_time <= now)
            .order_by(FlashDeal.end_time)
        )
        return list(result.scalars().all())

    async def insert(self, campaign: FlashDeal) -> FlashDeal:
        """Persist a new flash deal with its line items."""
        self.db.add(campaign)
        await self.db.commit()
        return campaign

    async def update(
        self,
        campaign: FlashDeal,
        line_items: Iterable[FlashDealLineItem] | None = None,
    ) -> FlashDeal:
        """Persist changes to a flash deal, optionally replacing its line items.

        Old line items are flushed out before new ones are added so the
        (campaign_id, product_id) unique constraint never sees both.
        """
        if line_items is not None:
            campaign.line_items.clear()
            await self.db.flush()
            campaign.line_items.extend(line_items)
        await self.db.commit()
        return campaign
