"""Errors raised by the flash deal engine.

Each error carries a stable ``code`` and the HTTP status the API maps it to.
``context()`` returns the structured fields callers need to act on the error.
"""

from typing import Any
from uuid import UUID


class FlashDealError(Exception):
    """Base class for every flash deal engine failure."""

    code = "flash_deal_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def context(self) -> dict[str, Any]:
        return {}


class DealValidationError(FlashDealError):
    """Raised when input is well-formed but not acceptable (e.g. start in the past)."""

    code = "validation_error"
    status_code = 422


class InconsistentDiscount(FlashDealError):
    """Raised when percentage mode math does not match the provided percent."""

    code = "inconsistent_discount"
    status_code = 422

    def __init__(
        self,
        product_id: UUID | None,
        calculated: float,
        provided: float | None,
    ):
        self.product_id = product_id
        self.calculated = calculated
        self.provided = provided
        target = f"product {product_id}" if product_id else "line item"
        super().__init__(
            f"Discount percentage for {target} doesn't match base price and deal price "
            f"(calculated {calculated:.2f}, provided {provided})"
        )

    def context(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id) if self.product_id else None,
            "calculated": round(self.calculated, 2),
            "provided": self.provided,
        }


class OverlapConflict(FlashDealError):
    """Raised when a product's window collides with a scheduled or active deal."""

    code = "overlap_conflict"
    status_code = 409

    def __init__(self, product_id: UUID, conflicting_campaign_id: UUID):
        self.product_id = product_id
        self.conflicting_campaign_id = conflicting_campaign_id
        super().__init__(
            f"Product {product_id} has an overlapping deal scheduled "
            f"(campaign {conflicting_campaign_id})"
        )

    def context(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "conflicting_campaign_id": str(self.conflicting_campaign_id),
        }


class InsufficientStock(FlashDealError):
    """Raised when a requested reservation exceeds the product's live stock."""

    code = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: UUID, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Product {product_id} doesn't have enough stock. "
            f"Available: {available}, Required: {requested}"
        )

    def context(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "requested": self.requested,
            "available": self.available,
            "shortfall": self.shortfall,
        }


class AlreadyClaimed(FlashDealError):
    """Raised when another live deal currently owns the product."""

    code = "already_claimed"
    status_code = 409

    def __init__(self, product_id: UUID, owner_campaign_id: UUID | None):
        self.product_id = product_id
        self.owner_campaign_id = owner_campaign_id
        super().__init__(f"Product {product_id} already has an active flash deal")

    def context(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "owner_campaign_id": str(self.owner_campaign_id) if self.owner_campaign_id else None,
        }


class InvalidTransition(FlashDealError):
    """Raised when a lifecycle transition is not permitted from the current state."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, requested: str, message: str | None = None):
        self.current = str(current)
        self.requested = str(requested)
        super().__init__(
            message or f"Cannot move flash deal from '{self.current}' to '{self.requested}'"
        )

    def context(self) -> dict[str, Any]:
        return {"current": self.current, "requested": self.requested}


class EditNotAllowed(InvalidTransition):
    code = "edit_not_allowed"

    def __init__(self, current: str):
        super().__init__(current, "scheduled", "Can only edit scheduled deals")


class InvalidPauseSource(InvalidTransition):
    code = "invalid_pause_source"

    def __init__(self, current: str):
        super().__init__(current, "paused", "Can only pause active deals")


class AlreadyEnded(InvalidTransition):
    code = "already_ended"

    def __init__(self):
        super().__init__("ended", "ended", "Deal is already ended")


class NotFound(FlashDealError):
    """Raised when a campaign or product does not exist or is soft-deleted."""

    code = "not_found"
    status_code = 404

    def __init__(self, kind: str, ids: list[UUID]):
        self.kind = kind
        self.ids = list(ids)
        joined = ", ".join(str(i) for i in self.ids)
        super().__init__(f"{kind.capitalize()} not found: {joined}")

    def context(self) -> dict[str, Any]:
        return {"kind": self.kind, "ids": [str(i) for i in self.ids]}


class ProductNotFound(NotFound):
    def __init__(self, product_ids: list[UUID]):
        super().__init__("product", product_ids)


class CampaignNotFound(NotFound):
    def __init__(self, campaign_id: UUID):
        super().__init__("flash deal", [campaign_id])


class ProductLocked(FlashDealError):
    """Raised when a product lock could not be acquired in time."""

    code = "product_locked"
    status_code = 409

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(
            f"Product {product_id} is being modified by another request, please retry"
        )

    def context(self) -> dict[str, Any]:
        return {"product_id": self.product_id}


class PartialSyncFailure(FlashDealError):
    """Raised after commit when some product projections could not be written.

    The campaign's own transition has already succeeded; ``campaign`` is the
    committed aggregate and ``failed_product_ids`` need reconciliation.
    """

    code = "partial_sync_failure"
    status_code = 200

    def __init__(
        self,
        failed_product_ids: list[UUID],
        synced_product_ids: list[UUID],
        campaign: Any = None,
    ):
        self.failed_product_ids = list(failed_product_ids)
        self.synced_product_ids = list(synced_product_ids)
        self.campaign = campaign
        failed = ", ".join(str(i) for i in self.failed_product_ids)
        super().__init__(f"Projection sync failed for products: {failed}")

    def context(self) -> dict[str, Any]:
        return {
            "failed_product_ids": [str(i) for i in self.failed_product_ids],
            "synced_product_ids": [str(i) for i in self.synced_product_ids],
        }
