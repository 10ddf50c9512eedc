"""Flash deal engine: validation, lifecycle transitions and projection sync.

Every operation that reads or writes a product's projection runs under the
per-product lock, so two requests for the same product cannot both pass
validation before either commits.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator, Callable
from uuid import UUID

from flashdeal.middleware.metrics import record_flash_deal_operation
from flashdeal.models.enums import DealStatus
from flashdeal.models.flash_deal import FlashDeal, FlashDealLineItem
from flashdeal.schemas.flash_deal import FlashDealFilter, FlashDealInput
from flashdeal.services.discount import compute_or_verify_discount
from flashdeal.services.errors import (
    CampaignNotFound,
    DealValidationError,
    FlashDealError,
    OverlapConflict,
    PartialSyncFailure,
    ProductLocked,
    ProductNotFound,
)
from flashdeal.services.lifecycle import DealAction, ensure_transition, is_projected
from flashdeal.services.overlap import OverlapValidator, as_utc
from flashdeal.services.product_lock import ProductLockManager
from flashdeal.services.projection import ProjectionSynchronizer
from flashdeal.services.stock import verify_stock

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@asynccontextmanager
async def track_operation(operation: str) -> AsyncIterator[None]:
    """Count an operation as success, rejected or sync_warning."""
    try:
        yield
    except PartialSyncFailure:
        record_flash_deal_operation(operation, "sync_warning")
        raise
    except FlashDealError:
        record_flash_deal_operation(operation, "rejected")
        raise
    else:
        record_flash_deal_operation(operation, "success")


def merge_sync_failures(*failures: PartialSyncFailure | None) -> PartialSyncFailure | None:
    failures = [f for f in failures if f is not None]
    if not failures:
        return None
    failed: list[UUID] = []
    synced: list[UUID] = []
    for failure in failures:
        failed.extend(failure.failed_product_ids)
        synced.extend(failure.synced_product_ids)
    return PartialSyncFailure(failed, synced)


@dataclass
class ClockResult:
    """Outcome of one deal clock pass."""

    activated: list[UUID] = field(default_factory=list)
    ended: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)


class FlashDealService:
    """Service class for flash deal lifecycle operations."""

    def __init__(
        self,
        campaigns,
        products,
        locks: ProductLockManager,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize flash deal service.

        Args:
            campaigns: Campaign store (FlashDealStore)
            products: Catalog store (ProductService)
            locks: Per-product lock manager
            clock: Returns the current aware UTC time
        """
        self.campaigns = campaigns
        self.products = products
        self.locks = locks
        self.clock = clock
        self.overlap = OverlapValidator(campaigns)
        self.projections = ProjectionSynchronizer(products)

    # ==================== Read Operations ====================

    async def get_campaign(self, campaign_id: UUID) -> FlashDeal:
        """Get a non-deleted flash deal.

        Raises:
            CampaignNotFound: Missing or soft-deleted
        """
        campaign = await self.campaigns.get_by_id(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id)
        return campaign

    async def list_campaigns(
        self, filters: FlashDealFilter, skip: int = 0, limit: int = 100
    ) -> tuple[list[FlashDeal], int]:
        return await self.campaigns.get_all(filters, skip=skip, limit=limit)

    # ==================== Validation ====================

    def _ensure_future_start(self, data: FlashDealInput) -> None:
        if as_utc(data.start_time) < self.clock():
            raise DealValidationError("Start date must be in the future")

    async def _validate(
        self,
        data: FlashDealInput,
        campaign_id: UUID | None = None,
        check_overlap: bool = True,
    ) -> list[float | None]:
        """Run every check for every line item before anything is written.

        Returns:
            Discount percentage to store for each line item, in input order
        """
        percents = [
            compute_or_verify_discount(
                item.base_price,
                item.deal_price,
                data.discount_mode,
                item.discount_percent,
                product_id=item.product_id,
            )
            for item in data.line_items
        ]

        products = await self.products.get_by_ids(data.product_ids)
        missing = [product_id for product_id in data.product_ids if product_id not in products]
        if missing:
            raise ProductNotFound(missing)

        if check_overlap:
            match = await self.overlap.find_overlap(
                data.product_ids,
                data.start_time,
                data.end_time,
                exclude_campaign_id=campaign_id,
            )
            if match is not None:
                raise OverlapConflict(match.product_id, match.campaign.campaign_id)

        for item in data.line_items:
            verify_stock(products[item.product_id], item.initial_stock, campaign_id)

        return percents

    # ==================== Aggregate Helpers ====================

    async def _load(self, campaign_id: UUID) -> FlashDeal:
        campaign = await self.campaigns.get_by_id(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id)
        return campaign

    @staticmethod
    def _build_line_items(
        data: FlashDealInput, percents: list[float | None]
    ) -> list[FlashDealLineItem]:
        return [
            FlashDealLineItem(
                line_item_id=uuid.uuid4(),
                product_id=item.product_id,
                position=position,
                base_price=item.base_price,
                deal_price=item.deal_price,
                discount_percent=percent,
                deal_quantity=item.deal_quantity,
                initial_stock=item.initial_stock,
                sold_quantity=0,
                max_quantity_per_user=item.max_quantity_per_user,
                min_order_quantity=item.min_order_quantity,
            )
            for position, (item, percent) in enumerate(zip(data.line_items, percents))
        ]

    @staticmethod
    def _assign_fields(campaign: FlashDeal, data: FlashDealInput) -> None:
        campaign.title = data.title
        campaign.deal_kind = data.deal_kind.value
        campaign.discount_mode = data.discount_mode.value
        campaign.start_time = data.start_time
        campaign.end_time = data.end_time
        campaign.show_on_homepage = data.show_on_homepage
        campaign.priority = data.priority
        campaign.badge_text = data.badge_text
        campaign.show_countdown = data.show_countdown
        campaign.eligible_sections = [section.value for section in data.eligible_sections]
        campaign.max_orders_per_user = data.max_orders_per_user
        campaign.payment_method_restrictions = data.payment_method_restrictions
        campaign.geo_restrictions = data.geo_restrictions
        campaign.enable_captcha = data.enable_captcha

    async def _raise_sync_failure(self, failure: PartialSyncFailure, campaign_id: UUID) -> None:
        # A failed write rolls the session back; hand the caller a fresh copy.
        failure.campaign = await self.campaigns.get_by_id(campaign_id)
        logger.warning(
            f"Campaign {campaign_id} committed but projection sync failed for "
            f"{[str(p) for p in failure.failed_product_ids]}"
        )
        raise failure

    # ==================== Lifecycle Operations ====================

    async def create_campaign(self, data: FlashDealInput, actor_id: UUID) -> FlashDeal:
        """Validate, commit as scheduled and project a new flash deal.

        Raises:
            DealValidationError, InconsistentDiscount, ProductNotFound,
            OverlapConflict, AlreadyClaimed, InsufficientStock, ProductLocked:
                Before anything is written
            PartialSyncFailure: After commit, with ``campaign`` attached
        """
        async with track_operation("create"):
            self._ensure_future_start(data)
            async with self.locks.hold(data.product_ids):
                percents = await self._validate(data)

                now = self.clock()
                campaign = FlashDeal(
                    campaign_id=uuid.uuid4(),
                    status=DealStatus.SCHEDULED.value,
                    created_by=actor_id,
                    created_at=now,
                    updated_at=now,
                    total_revenue=Decimal("0"),
                    total_units_sold=0,
                    average_order_value=Decimal("0"),
                    conversion_rate=0.0,
                    line_items=self._build_line_items(data, percents),
                )
                self._assign_fields(campaign, data)
                campaign = await self.campaigns.insert(campaign)
                campaign_id = campaign.campaign_id
                logger.info(
                    f"Flash deal {campaign_id} scheduled by {actor_id} "
                    f"for {len(data.line_items)} products"
                )

                try:
                    await self.projections.apply(campaign)
                except PartialSyncFailure as e:
                    await self._raise_sync_failure(e, campaign_id)
            return campaign

    async def edit_campaign(
        self, campaign_id: UUID, data: FlashDealInput, actor_id: UUID
    ) -> FlashDeal:
        """Replace a scheduled flash deal's fields and line items.

        Stock is re-checked on every edit; the overlap check runs when the
        window or the product set changes.

        Raises:
            CampaignNotFound, EditNotAllowed, plus every create-time validation error
            PartialSyncFailure: After commit, with ``campaign`` attached
        """
        async with track_operation("edit"):
            campaign = await self._load(campaign_id)
            ensure_transition(campaign.status, DealAction.EDIT)
            self._ensure_future_start(data)

            locked = set(campaign.product_ids) | set(data.product_ids)
            async with self.locks.hold(locked):
                campaign = await self._load(campaign_id)
                ensure_transition(campaign.status, DealAction.EDIT)
                old_product_ids = campaign.product_ids
                unlocked = set(old_product_ids) - locked
                if unlocked:
                    raise ProductLocked(str(sorted(unlocked, key=str)[0]))

                window_changed = as_utc(campaign.start_time) != as_utc(data.start_time) or as_utc(
                    campaign.end_time
                ) != as_utc(data.end_time)
                products_changed = set(old_product_ids) != set(data.product_ids)
                percents = await self._validate(
                    data,
                    campaign_id=campaign_id,
                    check_overlap=window_changed or products_changed,
                )

                self._assign_fields(campaign, data)
                campaign.updated_by = actor_id
                campaign.updated_at = self.clock()
                campaign = await self.campaigns.update(
                    campaign, line_items=self._build_line_items(data, percents)
                )
                logger.info(f"Flash deal {campaign_id} edited by {actor_id}")

                dropped = [p for p in old_product_ids if p not in set(data.product_ids)]
                retract_failure = apply_failure = None
                try:
                    await self.projections.retract(campaign_id, dropped)
                except PartialSyncFailure as e:
                    retract_failure = e
                try:
                    await self.projections.apply(campaign)
                except PartialSyncFailure as e:
                    apply_failure = e

                failure = merge_sync_failures(retract_failure, apply_failure)
                if failure is not None:
                    await self._raise_sync_failure(failure, campaign_id)
            return campaign

    async def activate_campaign(self, campaign_id: UUID) -> FlashDeal:
        """Move a scheduled deal to active. Driven by the deal clock.

        Projections were applied at commit time, so none are written here.

        Raises:
            CampaignNotFound, InvalidTransition
        """
        async with track_operation("activate"):
            campaign = await self._load(campaign_id)
            ensure_transition(campaign.status, DealAction.ACTIVATE)
            async with self.locks.hold(campaign.product_ids):
                campaign = await self._load(campaign_id)
                target = ensure_transition(campaign.status, DealAction.ACTIVATE)
                campaign.status = target.value
                campaign.updated_at = self.clock()
                campaign = await self.campaigns.update(campaign)
                logger.info(f"Flash deal {campaign_id} activated")
            return campaign

    async def pause_campaign(self, campaign_id: UUID, actor_id: UUID) -> FlashDeal:
        """Pause an active deal and retract its projections.

        Raises:
            CampaignNotFound, InvalidPauseSource
            PartialSyncFailure: After commit, with ``campaign`` attached
        """
        async with track_operation("pause"):
            campaign = await self._load(campaign_id)
            ensure_transition(campaign.status, DealAction.PAUSE)
            async with self.locks.hold(campaign.product_ids):
                campaign = await self._load(campaign_id)
                target = ensure_transition(campaign.status, DealAction.PAUSE)

                now = self.clock()
                campaign.status = target.value
                campaign.paused_by = actor_id
                campaign.paused_at = now
                campaign.updated_at = now
                product_ids = campaign.product_ids
                campaign = await self.campaigns.update(campaign)
                logger.info(f"Flash deal {campaign_id} paused by {actor_id}")

                try:
                    await self.projections.retract(campaign_id, product_ids)
                except PartialSyncFailure as e:
                    await self._raise_sync_failure(e, campaign_id)
            return campaign

    async def end_campaign(self, campaign_id: UUID, actor_id: UUID | None) -> FlashDeal:
        """End an active or paused deal and retract its projections.

        ``actor_id`` is None when the deal clock ends an expired deal.

        Raises:
            CampaignNotFound, AlreadyEnded, InvalidTransition
            PartialSyncFailure: After commit, with ``campaign`` attached
        """
        async with track_operation("end"):
            campaign = await self._load(campaign_id)
            ensure_transition(campaign.status, DealAction.END)
            async with self.locks.hold(campaign.product_ids):
                campaign = await self._load(campaign_id)
                target = ensure_transition(campaign.status, DealAction.END)

                now = self.clock()
                campaign.status = target.value
                campaign.ended_by = actor_id
                campaign.ended_at = now
                campaign.updated_at = now
                product_ids = campaign.product_ids
                campaign = await self.campaigns.update(campaign)
                logger.info(f"Flash deal {campaign_id} ended by {actor_id or 'deal clock'}")

                try:
                    await self.projections.retract(campaign_id, product_ids)
                except PartialSyncFailure as e:
                    await self._raise_sync_failure(e, campaign_id)
            return campaign

    async def resync_projections(self, campaign_id: UUID) -> FlashDeal:
        """Re-apply (scheduled/active) or re-retract (paused/ended) projections.

        Reconciles a campaign after a PartialSyncFailure.
        """
        async with track_operation("resync"):
            campaign = await self._load(campaign_id)
            async with self.locks.hold(campaign.product_ids):
                campaign = await self._load(campaign_id)
                try:
                    if is_projected(campaign.status):
                        await self.projections.apply(campaign)
                    else:
                        await self.projections.retract(campaign_id, campaign.product_ids)
                except PartialSyncFailure as e:
                    await self._raise_sync_failure(e, campaign_id)
                logger.info(f"Flash deal {campaign_id} projections resynced ({campaign.status})")
            return campaign

    async def advance_clock(self, now: datetime | None = None) -> ClockResult:
        """Activate deals whose window opened and end deals whose window closed.

        Activation runs first so a scheduled deal whose whole window has
        passed goes through active before ending in the same pass.
        """
        now = now or self.clock()
        result = ClockResult()

        due_ids = [c.campaign_id for c in await self.campaigns.find_due_for_activation(now)]
        for campaign_id in due_ids:
            try:
                await self.activate_campaign(campaign_id)
                result.activated.append(campaign_id)
            except FlashDealError as e:
                logger.warning(f"Deal clock could not activate {campaign_id}: {e}")
                result.failed.append(campaign_id)

        expired_ids = [c.campaign_id for c in await self.campaigns.find_due_for_ending(now)]
        for campaign_id in expired_ids:
            try:
                await self.end_campaign(campaign_id, actor_id=None)
                result.ended.append(campaign_id)
            except PartialSyncFailure as e:
                logger.warning(f"Deal clock ended {campaign_id} with sync warning: {e}")
                result.ended.append(campaign_id)
            except FlashDealError as e:
                logger.warning(f"Deal clock could not end {campaign_id}: {e}")
                result.failed.append(campaign_id)

        return result
