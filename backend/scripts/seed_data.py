"""Seed data script for development and testing.

Creates:
- SEED_PRODUCT_COUNT catalog products with stock 50
- 1 scheduled flash deal over the first three products, starting in
  DEAL_START_MINUTES and lasting DEAL_DURATION_MINUTES

Environment Variables:
    SEED_PRODUCT_COUNT: Number of products to create (default: 10)
    DEAL_START_MINUTES: Minutes from now until the deal starts (default: 5)
    DEAL_DURATION_MINUTES: Deal duration in minutes (default: 120)

Usage:
    cd backend && uv run python -m scripts.seed_data
"""

import asyncio
import os
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Configuration from environment variables
SEED_PRODUCT_COUNT = int(os.getenv("SEED_PRODUCT_COUNT", "10"))
DEAL_START_MINUTES = int(os.getenv("DEAL_START_MINUTES", "5"))
DEAL_DURATION_MINUTES = int(os.getenv("DEAL_DURATION_MINUTES", "120"))

from sqlalchemy.ext.asyncio import AsyncSession

from flashdeal.api.deps import build_flash_deal_service
from flashdeal.core.database import async_session_maker, engine
from flashdeal.core.redis import close_redis, get_redis
from flashdeal.models import Product
from flashdeal.models.enums import DealKind, DiscountMode
from flashdeal.schemas.flash_deal import FlashDealInput, LineItemInput
from flashdeal.services.errors import FlashDealError
from flashdeal.services.redis_service import RedisService

SEED_ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


async def seed_products(session: AsyncSession) -> list[Product]:
    """Create catalog products with a clean projection."""
    print("Seeding products...")
    products = [
        Product(
            product_id=uuid.uuid4(),
            name=f"Seed Product {index:02d}",
            description="Development catalog item",
            stock=50,
            price=Decimal("100.00") + index,
            version=0,
            status="active",
            deal_is_active=False,
            deal_sold_quantity=0,
            deal_priority=0,
        )
        for index in range(1, SEED_PRODUCT_COUNT + 1)
    ]
    session.add_all(products)
    await session.commit()
    print(f"  Created {len(products)} products")
    return products


async def seed_flash_deal(session: AsyncSession, products: list[Product]) -> None:
    """Create one scheduled percentage deal through the engine."""
    print("Seeding flash deal...")
    start = datetime.now(timezone.utc) + timedelta(minutes=DEAL_START_MINUTES)
    deal = FlashDealInput(
        title="Seed Flash Deal",
        deal_kind=DealKind.FLASH,
        discount_mode=DiscountMode.PERCENTAGE,
        start_time=start,
        end_time=start + timedelta(minutes=DEAL_DURATION_MINUTES),
        line_items=[
            LineItemInput(
                product_id=product.product_id,
                base_price=product.price,
                deal_price=(product.price * Decimal("0.8")).quantize(Decimal("0.01")),
                deal_quantity=10,
                initial_stock=10,
                max_quantity_per_user=2,
            )
            for product in products[:3]
        ],
    )

    redis = await get_redis()
    service = build_flash_deal_service(session, RedisService(redis))
    try:
        campaign = await service.create_campaign(deal, SEED_ADMIN_ID)
    except FlashDealError as e:
        print(f"  Could not create flash deal: {e}")
        return
    print(f"  Created flash deal {campaign.campaign_id} starting {start.isoformat()}")


async def main():
    async with async_session_maker() as session:
        products = await seed_products(session)
        await seed_flash_deal(session, products)

    await close_redis()
    await engine.dispose()
    print("Seeding complete!")


if __name__ == "__main__":
    asyncio.run(main())
