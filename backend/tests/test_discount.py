"""Tests for discount percentage calculation and verification."""

from decimal import Decimal
from uuid import uuid4

import pytest

from flashdeal.models.enums import DiscountMode
from flashdeal.services.discount import (
    calculate_discount_percent,
    compute_or_verify_discount,
)
from flashdeal.services.errors import InconsistentDiscount


class TestCalculateDiscountPercent:
    """Test the raw discount formula."""

    def test_basic_discount(self):
        assert calculate_discount_percent(Decimal("100.00"), Decimal("80.00")) == pytest.approx(20.0)

    def test_no_discount(self):
        assert calculate_discount_percent(Decimal("50.00"), Decimal("50.00")) == 0.0

    def test_repeating_fraction_is_not_rounded(self):
        result = calculate_discount_percent(Decimal("30.00"), Decimal("20.00"))
        assert result == pytest.approx(33.3333, abs=1e-4)

    def test_deal_above_base_is_negative(self):
        assert calculate_discount_percent(Decimal("100.00"), Decimal("120.00")) < 0


class TestPercentageMode:
    """Percentage mode computes or cross-checks the provided value."""

    def test_missing_percent_is_computed_and_rounded(self):
        result = compute_or_verify_discount(
            Decimal("30.00"), Decimal("20.00"), DiscountMode.PERCENTAGE, None
        )
        assert result == 33.33

    def test_matching_percent_is_kept(self):
        result = compute_or_verify_discount(
            Decimal("100.00"), Decimal("80.00"), DiscountMode.PERCENTAGE, 20.0
        )
        assert result == 20.0

    def test_percent_within_tolerance_is_accepted(self):
        result = compute_or_verify_discount(
            Decimal("30.00"), Decimal("20.00"), DiscountMode.PERCENTAGE, 33.33
        )
        assert result == 33.33

    def test_mismatched_percent_rejected(self):
        product_id = uuid4()

        with pytest.raises(InconsistentDiscount) as exc_info:
            compute_or_verify_discount(
                Decimal("100.00"),
                Decimal("80.00"),
                DiscountMode.PERCENTAGE,
                25.0,
                product_id=product_id,
            )

        error = exc_info.value
        assert error.product_id == product_id
        assert error.calculated == pytest.approx(20.0)
        assert error.provided == 25.0
        assert error.context()["product_id"] == str(product_id)

    def test_percent_just_outside_tolerance_rejected(self):
        with pytest.raises(InconsistentDiscount):
            compute_or_verify_discount(
                Decimal("100.00"), Decimal("80.00"), DiscountMode.PERCENTAGE, 20.02
            )

    def test_deal_price_above_base_rejected(self):
        with pytest.raises(InconsistentDiscount):
            compute_or_verify_discount(
                Decimal("100.00"), Decimal("120.00"), DiscountMode.PERCENTAGE, None
            )

    def test_accepts_raw_mode_string(self):
        result = compute_or_verify_discount(
            Decimal("100.00"), Decimal("75.00"), "percentage", None
        )
        assert result == 25.0


class TestFlatPriceMode:
    """Flat-price mode never checks the percentage."""

    def test_provided_percent_passes_through(self):
        result = compute_or_verify_discount(
            Decimal("100.00"), Decimal("80.00"), DiscountMode.FLAT_PRICE, 55.0
        )
        assert result == 55.0

    def test_missing_percent_stays_missing(self):
        result = compute_or_verify_discount(
            Decimal("100.00"), Decimal("80.00"), DiscountMode.FLAT_PRICE, None
        )
        assert result is None

    def test_deal_above_base_is_not_checked(self):
        result = compute_or_verify_discount(
            Decimal("100.00"), Decimal("150.00"), DiscountMode.FLAT_PRICE, None
        )
        assert result is None
