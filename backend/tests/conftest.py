"""Pytest configuration and fixtures for testing."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from flashdeal.models.enums import DealKind, DealStatus, DiscountMode
from flashdeal.models.flash_deal import FlashDeal, FlashDealLineItem
from flashdeal.models.product import Product
from flashdeal.schemas.flash_deal import FlashDealFilter, FlashDealInput, LineItemInput
from flashdeal.services.errors import ProductNotFound
from flashdeal.services.flash_deal_service import FlashDealService
from flashdeal.services.product_lock import ProductLockManager
from flashdeal.services.product_service import projection_values
from flashdeal.services.redis_service import RedisService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Controllable replacement for the engine's wall clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryFlashDealStore:
    """Campaign store keeping FlashDeal objects in a dict."""

    def __init__(self):
        self.campaigns: dict[UUID, FlashDeal] = {}

    async def get_by_id(self, campaign_id: UUID) -> FlashDeal | None:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None or campaign.deleted_at is not None:
            return None
        return campaign

    async def find_overlapping(self, filters: FlashDealFilter) -> list[FlashDeal]:
        # Coarse candidate set; the overlap validator re-checks every condition
        return [c for c in self.campaigns.values() if c.deleted_at is None]

    async def get_all(
        self, filters: FlashDealFilter, skip: int = 0, limit: int = 100
    ) -> tuple[list[FlashDeal], int]:
        matches = [
            c
            for c in self.campaigns.values()
            if c.deleted_at is None
            and (not filters.statuses or c.status in [s.value for s in filters.statuses])
            and (filters.deal_kind is None or c.deal_kind == filters.deal_kind.value)
            and (filters.created_by is None or c.created_by == filters.created_by)
        ]
        matches.sort(key=lambda c: c.created_at, reverse=True)
        return matches[skip : skip + limit], len(matches)

    async def find_due_for_activation(self, now: datetime) -> list[FlashDeal]:
        return [
            c
            for c in self.campaigns.values()
            if c.deleted_at is None
            and c.status == DealStatus.SCHEDULED.value
            and c.start_time <= now
        ]

    async def find_due_for_ending(self, now: datetime) -> list[FlashDeal]:
        return [
            c
            for c in self.campaigns.values()
            if c.deleted_at is None
            and c.status in (DealStatus.ACTIVE.value, DealStatus.PAUSED.value)
            and c.end_time <= now
        ]

    async def insert(self, campaign: FlashDeal) -> FlashDeal:
        self.campaigns[campaign.campaign_id] = campaign
        return campaign

    async def update(self, campaign: FlashDeal, line_items=None) -> FlashDeal:
        if line_items is not None:
            campaign.line_items.clear()
            campaign.line_items.extend(line_items)
        self.campaigns[campaign.campaign_id] = campaign
        return campaign


class InMemoryProductService:
    """Catalog store keeping Product objects in a dict.

    Product IDs in ``failing_ids`` raise SQLAlchemyError on projection writes.
    """

    def __init__(self):
        self.products: dict[UUID, Product] = {}
        self.failing_ids: set[UUID] = set()
        self.writes: list[UUID] = []

    def add(self, product: Product) -> Product:
        self.products[product.product_id] = product
        return product

    async def get_by_id(self, product_id: UUID) -> Product | None:
        product = self.products.get(product_id)
        if product is None or product.deleted_at is not None:
            return None
        return product

    async def get_by_ids(self, product_ids) -> dict[UUID, Product]:
        found = {}
        for product_id in product_ids:
            product = await self.get_by_id(product_id)
            if product is not None:
                found[product_id] = product
        return found

    async def update_projection(self, product_id: UUID, projection) -> None:
        if product_id in self.failing_ids:
            raise SQLAlchemyError("connection lost")
        product = await self.get_by_id(product_id)
        if product is None:
            raise ProductNotFound([product_id])
        for column, value in projection_values(projection).items():
            setattr(product, column, value)
        product.version += 1
        self.writes.append(product_id)


class LockingRedis:
    """Redis double honouring SET NX and the owner-checked release script."""

    def __init__(self):
        self.values: dict[str, str] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    def register_script(self, script):
        async def release(keys, args):
            if self.values.get(keys[0]) == args[0]:
                del self.values[keys[0]]
                return 1
            return 0

        return release


def build_product(stock: int = 50, price: Decimal = Decimal("100.00"), **overrides) -> Product:
    fields = dict(
        product_id=uuid4(),
        name="Test Product",
        description=None,
        stock=stock,
        price=price,
        version=0,
        status="active",
        deleted_at=None,
        **projection_values(None),
    )
    fields.update(overrides)
    return Product(**fields)


def build_campaign(
    product_ids: list[UUID],
    start_time: datetime,
    end_time: datetime,
    status: DealStatus = DealStatus.SCHEDULED,
    **overrides,
) -> FlashDeal:
    """FlashDeal stored directly, bypassing the engine's validation."""
    fields = dict(
        campaign_id=uuid4(),
        title="Stored Deal",
        deal_kind=DealKind.FLASH.value,
        discount_mode=DiscountMode.FLAT_PRICE.value,
        start_time=start_time,
        end_time=end_time,
        status=status.value,
        show_on_homepage=False,
        priority=0,
        badge_text=None,
        show_countdown=True,
        eligible_sections=["homepage"],
        max_orders_per_user=1,
        payment_method_restrictions=None,
        geo_restrictions=None,
        enable_captcha=False,
        created_by=uuid4(),
        updated_by=None,
        paused_by=None,
        ended_by=None,
        paused_at=None,
        ended_at=None,
        deleted_at=None,
        created_at=NOW,
        updated_at=NOW,
        total_revenue=Decimal("0"),
        total_units_sold=0,
        average_order_value=Decimal("0"),
        conversion_rate=0.0,
        line_items=[
            FlashDealLineItem(
                line_item_id=uuid4(),
                product_id=product_id,
                position=position,
                base_price=Decimal("100.00"),
                deal_price=Decimal("80.00"),
                discount_percent=None,
                deal_quantity=10,
                initial_stock=10,
                sold_quantity=0,
                max_quantity_per_user=2,
                min_order_quantity=1,
            )
            for position, product_id in enumerate(product_ids)
        ],
    )
    fields.update(overrides)
    return FlashDeal(**fields)


def build_deal_input(
    products: list[Product],
    start_time: datetime,
    duration: timedelta = timedelta(hours=2),
    discount_mode: DiscountMode = DiscountMode.PERCENTAGE,
    initial_stock: int = 10,
    **overrides,
) -> FlashDealInput:
    """Valid request body: 20% off every product."""
    fields = dict(
        title="Weekend Flash Sale",
        deal_kind=DealKind.FLASH,
        discount_mode=discount_mode,
        start_time=start_time,
        end_time=start_time + duration,
        line_items=[
            LineItemInput(
                product_id=product.product_id,
                base_price=product.price,
                deal_price=(product.price * Decimal("0.8")).quantize(Decimal("0.01")),
                deal_quantity=initial_stock,
                initial_stock=initial_stock,
                max_quantity_per_user=2,
            )
            for product in products
        ],
    )
    fields.update(overrides)
    return FlashDealInput(**fields)


# Mock Redis client fixture
@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis client whose locks are always free."""
    redis = AsyncMock()

    # Mock common Redis operations
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    # register_script is synchronous; the returned script is awaited
    redis.register_script = MagicMock(return_value=AsyncMock(return_value=1))

    return redis


@pytest.fixture
def redis_service(mock_redis: AsyncMock) -> RedisService:
    return RedisService(mock_redis)


@pytest.fixture
def lock_manager(redis_service: RedisService) -> ProductLockManager:
    return ProductLockManager(redis_service, ttl=10, wait_timeout=0.1, retry_interval=0.01)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def campaign_store() -> InMemoryFlashDealStore:
    return InMemoryFlashDealStore()


@pytest.fixture
def product_store() -> InMemoryProductService:
    return InMemoryProductService()


@pytest.fixture
def make_product(product_store: InMemoryProductService) -> Callable[..., Product]:
    """Create a catalog product and register it with the in-memory store."""

    def _make(stock: int = 50, price: Decimal = Decimal("100.00"), **overrides) -> Product:
        return product_store.add(build_product(stock=stock, price=price, **overrides))

    return _make


@pytest.fixture
def service(
    campaign_store: InMemoryFlashDealStore,
    product_store: InMemoryProductService,
    lock_manager: ProductLockManager,
    clock: FixedClock,
) -> FlashDealService:
    return FlashDealService(campaign_store, product_store, lock_manager, clock=clock)


@pytest.fixture
def actor_id() -> UUID:
    return uuid.uuid4()
