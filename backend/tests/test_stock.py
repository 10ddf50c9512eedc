"""Tests for the stock reservation gate."""

from uuid import uuid4

import pytest

from conftest import build_product
from flashdeal.services.errors import AlreadyClaimed, InsufficientStock
from flashdeal.services.stock import verify_stock


class TestVerifyStock:
    def test_enough_stock_passes(self):
        product = build_product(stock=50)

        verify_stock(product, 50)

        # Catalog stock is compared against, never decremented
        assert product.stock == 50

    def test_insufficient_stock_reports_shortfall(self):
        product = build_product(stock=5)

        with pytest.raises(InsufficientStock) as exc_info:
            verify_stock(product, 8)

        error = exc_info.value
        assert error.product_id == product.product_id
        assert error.requested == 8
        assert error.available == 5
        assert error.shortfall == 3

    def test_product_claimed_by_other_deal(self):
        owner = uuid4()
        product = build_product(stock=50, deal_is_active=True, deal_campaign_id=owner)

        with pytest.raises(AlreadyClaimed) as exc_info:
            verify_stock(product, 1)

        assert exc_info.value.owner_campaign_id == owner

    def test_claim_checked_before_stock(self):
        product = build_product(stock=1, deal_is_active=True, deal_campaign_id=uuid4())

        with pytest.raises(AlreadyClaimed):
            verify_stock(product, 10)

    def test_own_projection_is_not_a_claim(self):
        campaign_id = uuid4()
        product = build_product(stock=50, deal_is_active=True, deal_campaign_id=campaign_id)

        verify_stock(product, 10, campaign_id=campaign_id)

    def test_other_projection_blocks_edit(self):
        product = build_product(stock=50, deal_is_active=True, deal_campaign_id=uuid4())

        with pytest.raises(AlreadyClaimed):
            verify_stock(product, 10, campaign_id=uuid4())
