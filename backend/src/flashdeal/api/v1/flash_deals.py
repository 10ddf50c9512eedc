"""Flash deal management API endpoints."""

import logging
from datetime import datetime
from typing import Awaitable
from uuid import UUID

from fastapi import APIRouter, Query, status

from flashdeal.api.deps import ActorId, FlashDealServiceDep
from flashdeal.models.enums import DealKind, DealStatus
from flashdeal.models.flash_deal import FlashDeal
from flashdeal.schemas.flash_deal import (
    FlashDealFilter,
    FlashDealInput,
    FlashDealListResponse,
    FlashDealResponse,
    SyncWarning,
)
from flashdeal.services.errors import PartialSyncFailure

logger = logging.getLogger(__name__)

router = APIRouter()


def to_response(campaign: FlashDeal, warning: SyncWarning | None = None) -> FlashDealResponse:
    response = FlashDealResponse.model_validate(campaign)
    response.sync_warning = warning
    return response


async def run_operation(operation: Awaitable[FlashDeal]) -> FlashDealResponse:
    """Await an engine call, reporting a post-commit sync failure as a warning."""
    try:
        campaign = await operation
    except PartialSyncFailure as e:
        warning = SyncWarning(
            detail=e.message,
            failed_product_ids=e.failed_product_ids,
            synced_product_ids=e.synced_product_ids,
        )
        return to_response(e.campaign, warning)
    return to_response(campaign)


@router.get("", response_model=FlashDealListResponse)
async def list_flash_deals(
    service: FlashDealServiceDep,
    status_filter: DealStatus | None = Query(None, alias="status"),
    deal_kind: DealKind | None = Query(None),
    created_by: UUID | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    """Get flash deals with optional filters, newest first."""
    filters = FlashDealFilter(
        statuses=[status_filter] if status_filter else None,
        deal_kind=deal_kind,
        created_by=created_by,
        start_from=start_date,
        start_to=end_date,
    )
    campaigns, total = await service.list_campaigns(filters, skip=skip, limit=limit)
    return FlashDealListResponse(
        flash_deals=[to_response(campaign) for campaign in campaigns],
        total=total,
    )


@router.get("/{campaign_id}", response_model=FlashDealResponse)
async def get_flash_deal(campaign_id: UUID, service: FlashDealServiceDep):
    """Get flash deal by ID."""
    return to_response(await service.get_campaign(campaign_id))


@router.post("", response_model=FlashDealResponse, status_code=status.HTTP_201_CREATED)
async def create_flash_deal(
    deal_data: FlashDealInput,
    service: FlashDealServiceDep,
    actor_id: ActorId,
):
    """Create a flash deal; it starts out scheduled."""
    return await run_operation(service.create_campaign(deal_data, actor_id))


@router.put("/{campaign_id}", response_model=FlashDealResponse)
async def edit_flash_deal(
    campaign_id: UUID,
    deal_data: FlashDealInput,
    service: FlashDealServiceDep,
    actor_id: ActorId,
):
    """Edit a scheduled flash deal."""
    return await run_operation(service.edit_campaign(campaign_id, deal_data, actor_id))


@router.patch("/{campaign_id}/pause", response_model=FlashDealResponse)
async def pause_flash_deal(
    campaign_id: UUID,
    service: FlashDealServiceDep,
    actor_id: ActorId,
):
    """Pause an active flash deal."""
    return await run_operation(service.pause_campaign(campaign_id, actor_id))


@router.patch("/{campaign_id}/end", response_model=FlashDealResponse)
async def end_flash_deal(
    campaign_id: UUID,
    service: FlashDealServiceDep,
    actor_id: ActorId,
):
    """End an active or paused flash deal."""
    return await run_operation(service.end_campaign(campaign_id, actor_id))


@router.post("/{campaign_id}/activate", response_model=FlashDealResponse)
async def activate_flash_deal(
    campaign_id: UUID,
    service: FlashDealServiceDep,
    actor_id: ActorId,
):
    """Activate a scheduled flash deal ahead of the deal clock."""
    logger.info(f"Manual activation of flash deal {campaign_id} requested by {actor_id}")
    return await run_operation(service.activate_campaign(campaign_id))


@router.post("/{campaign_id}/sync", response_model=FlashDealResponse)
async def sync_flash_deal(
    campaign_id: UUID,
    service: FlashDealServiceDep,
    actor_id: ActorId,
):
    """Re-run projection sync for a flash deal after a sync warning."""
    logger.info(f"Projection resync of flash deal {campaign_id} requested by {actor_id}")
    return await run_operation(service.resync_projections(campaign_id))
