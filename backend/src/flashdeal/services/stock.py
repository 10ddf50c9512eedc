"""Stock reservation gate for flash deal line items."""

from uuid import UUID

from flashdeal.models.product import Product
from flashdeal.services.errors import AlreadyClaimed, InsufficientStock


def verify_stock(
    product: Product,
    requested_initial_stock: int,
    campaign_id: UUID | None = None,
) -> None:
    """Check that a product can back a deal reservation.

    The projection reflects current live ownership, which the overlap check
    cannot see for an active deal with a far-away window. Catalog stock is only
    compared against, never decremented.

    Args:
        product: Catalog item with its current projection
        requested_initial_stock: Units carved out for the deal
        campaign_id: Deal being edited; its own projection is not a claim

    Raises:
        AlreadyClaimed: Another live deal owns the product
        InsufficientStock: Requested units exceed live stock
    """
    if product.deal_is_active and (
        campaign_id is None or product.deal_campaign_id != campaign_id
    ):
        raise AlreadyClaimed(product.product_id, product.deal_campaign_id)

    if requested_initial_stock > product.stock:
        raise InsufficientStock(product.product_id, requested_initial_stock, product.stock)
