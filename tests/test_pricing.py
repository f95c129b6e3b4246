"""Unit tests for per-kilogram pricing bands."""

from types import SimpleNamespace

import pytest

from src.domain.pricing import (
    PricingBand,
    band_from_pricing,
    calculate_midpoint_amount_lkr,
)


class TestPricingBand:
    def setup_method(self):
        self.band = PricingBand(min_price_lkr_per_kg=40.0, max_price_lkr_per_kg=60.0)

    def test_midpoint_per_kg(self):
        assert self.band.midpoint_per_kg == 50.0

    def test_estimate_scales_both_ends(self):
        assert self.band.estimate(5) == (200.0, 300.0)

    def test_midpoint_amount(self):
        assert self.band.midpoint_amount(4.0) == 200.0

    def test_midpoint_amount_rounds_to_cents(self):
        band = PricingBand(min_price_lkr_per_kg=10.0, max_price_lkr_per_kg=10.5)
        assert band.midpoint_amount(1.333) == 13.66  # 10.25 * 1.333

    def test_negative_weight_is_clamped(self):
        assert self.band.midpoint_amount(-3.0) == 0.0


class TestPricingRows:
    def test_missing_row_has_no_band(self):
        assert band_from_pricing(None) is None
        assert calculate_midpoint_amount_lkr(2.0, None) is None

    def test_amount_from_row(self):
        row = SimpleNamespace(min_price_lkr_per_kg=25, max_price_lkr_per_kg=35)
        assert calculate_midpoint_amount_lkr(2.0, row) == 60.0

    @pytest.mark.parametrize("weight,expected", [(0, 0.0), (0.5, 15.0), (10, 300.0)])
    def test_amount_is_weight_times_midpoint(self, weight, expected):
        row = SimpleNamespace(min_price_lkr_per_kg=25, max_price_lkr_per_kg=35)
        assert calculate_midpoint_amount_lkr(weight, row) == expected
