"""
Per-kilogram pricing for recyclable waste.

Formula
-------
* Estimate at booking time: ``quantity x min`` .. ``quantity x max``
* Final amount on collection: ``weight x (min + max) / 2``, rounded to cents

A category with no pricing row has no amount; callers decide whether that
is an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PricingBand:
    min_price_lkr_per_kg: float
    max_price_lkr_per_kg: float

    @property
    def midpoint_per_kg(self) -> float:
        return (self.min_price_lkr_per_kg + self.max_price_lkr_per_kg) / 2

    def estimate(self, quantity_kg: float) -> tuple[float, float]:
        return (
            round(self.min_price_lkr_per_kg * quantity_kg, 2),
            round(self.max_price_lkr_per_kg * quantity_kg, 2),
        )

    def midpoint_amount(self, weight_kg: float) -> float:
        weight = max(0.0, weight_kg or 0.0)
        return round(self.midpoint_per_kg * weight, 2)


def band_from_pricing(pricing) -> Optional[PricingBand]:
    """Build a band from a pricing row (or ``None`` when there is none)."""
    if pricing is None:
        return None
    return PricingBand(
        min_price_lkr_per_kg=float(pricing.min_price_lkr_per_kg or 0),
        max_price_lkr_per_kg=float(pricing.max_price_lkr_per_kg or 0),
    )


def calculate_midpoint_amount_lkr(weight_kg: float, pricing) -> Optional[float]:
    band = band_from_pricing(pricing)
    if band is None:
        return None
    return band.midpoint_amount(weight_kg)
