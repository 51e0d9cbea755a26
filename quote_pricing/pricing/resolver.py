"""
Tier / model resolver — turns a service's pricing model and the booking's
numeric driver into a base price.

Never raises for bad input: negative, missing or non-numeric drivers count as
zero, and an area with no matching tier falls back to the service's default
rate (an hourly service with no matching band prices at zero).  Upstream
callers own input validation.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from quote_pricing.models.enums import PricingModel
from quote_pricing.models.schemas import PricingTier, Service
from quote_pricing.models.state import BookingInput

logger = logging.getLogger(__name__)


def _non_negative(value: Optional[float]) -> float:
    if value is None or value < 0:
        return 0.0
    return float(value)


def find_tier(tiers: list[PricingTier], value: float) -> Optional[PricingTier]:
    """First tier (in listed order) whose inclusive bounds contain value."""
    for tier in tiers:
        if tier.contains(value):
            return tier
    return None


def tiered_price(service: Service, area: Optional[float]) -> float:
    area = _non_negative(area)
    tier = find_tier(service.tiers, area)
    if tier is None:
        logger.debug(
            f"[resolver] No tier for {area} on {service.id!r}; "
            f"using default rate {service.default_rate}"
        )
        return area * service.default_rate
    if tier.flat_price is not None:
        return tier.flat_price
    return area * tier.price_per_unit


def per_room_price(service: Service, booking: BookingInput) -> float:
    """
    Room-type breakdown when given, else room count times the per-room rate.
    Without a room count the rooms are estimated from the area (at least one).
    """
    if booking.room_breakdown:
        return sum(
            service.room_types.get(room_type, 0.0) * max(0, count)
            for room_type, count in booking.room_breakdown.items()
        )

    rooms = _non_negative(booking.rooms)
    if rooms == 0:
        area = _non_negative(booking.area)
        if area > 0 and service.area_per_room > 0:
            rooms = max(1, math.floor(area / service.area_per_room))
    return rooms * service.per_room_rate


def hourly_price(service: Service, area: Optional[float]) -> float:
    area = _non_negative(area)
    for rate in service.hour_rates:
        if rate.contains(area):
            return rate.hours * rate.price_per_hour
    logger.debug(f"[resolver] No hourly band for {area} on {service.id!r}")
    return 0.0


def bulk_discount_price(service: Service, area: Optional[float]) -> float:
    """Area times the unit rate, less the highest area threshold reached."""
    area = _non_negative(area)
    base = area * service.flat_rate
    reached = [d for d in service.bulk_discounts if area >= d.min_value]
    if not reached:
        return base
    best = max(reached, key=lambda d: d.min_value)
    return base - base * (best.percentage / 100)


def window_total(service: Service, quantities: dict[int, int]) -> float:
    """
    Sum qty * unit price over the service's window bands.

    If any regular (non-premium) band has a non-zero quantity and the sum is
    below the service's minimum charge, the minimum charge is returned.
    """
    total = 0.0
    regular_count = 0
    for band in service.window_bands:
        qty = max(0, int(quantities.get(band.band_index, 0) or 0))
        if qty == 0:
            continue
        if band.band_index < service.premium_band_start:
            regular_count += qty
        total += qty * band.unit_price

    if regular_count > 0 and total < service.window_minimum_charge:
        logger.debug(
            f"[resolver] Window total {total} below floor "
            f"{service.window_minimum_charge} for {service.id!r}"
        )
        return service.window_minimum_charge
    return total


def resolve_base_price(service: Service, booking: BookingInput) -> float:
    """Return the non-negative base price for the booking."""
    model = service.pricing_model

    if model == PricingModel.TIERED_PER_AREA:
        price = tiered_price(service, booking.area)
    elif model == PricingModel.FLAT_PER_AREA:
        price = _non_negative(booking.area) * service.flat_rate
    elif model == PricingModel.PER_ROOM:
        price = per_room_price(service, booking)
    elif model == PricingModel.PER_WINDOW_BAND:
        price = window_total(service, booking.window_quantities)
    elif model == PricingModel.HOURLY_BY_SIZE:
        price = hourly_price(service, booking.area)
    elif model == PricingModel.BULK_DISCOUNT:
        price = bulk_discount_price(service, booking.area)
    else:  # pragma: no cover
        price = 0.0

    return max(0.0, price)
