"""Pricing — base price resolution and the base quote calculator."""

from quote_pricing.pricing.resolver import (
    resolve_base_price,
    window_total,
    tiered_price,
    per_room_price,
    hourly_price,
    bulk_discount_price,
)
from quote_pricing.pricing.calculator import compute_base_quote, round_currency

__all__ = [
    "resolve_base_price",
    "window_total",
    "tiered_price",
    "per_room_price",
    "hourly_price",
    "bulk_discount_price",
    "compute_base_quote",
    "round_currency",
]
