"""
Base quote calculator — base price, frequency, add-ons, tax.

Contract:
  subtotal = base * frequency_multiplier + add_ons + window_add_on
  total    = subtotal * (1 + tax_rate) - rut_deduction
  rounded with round_currency (half away from zero, whole currency units)

The frequency multiplier touches only the base charge.  Add-ons and the
window add-on are flat and frequency-independent.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

from quote_pricing.models.enums import PricingModel
from quote_pricing.models.schemas import PricingCatalog
from quote_pricing.models.state import BaseQuote, PricingContext
from quote_pricing.pricing.resolver import window_total

logger = logging.getLogger(__name__)

_UNIT = Decimal("1")


def round_currency(value: Any) -> int:
    """Round to whole currency units, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return 0
    return int(amount.quantize(_UNIT, rounding=ROUND_HALF_UP))


def is_rut_eligible(context: PricingContext, catalog: PricingCatalog) -> bool:
    booking = context.booking
    if not (booking.use_rut and catalog.rut.enabled and context.service.rut_eligible):
        return False
    zip_code = (booking.zip_code or "").strip()
    return bool(zip_code) and zip_code in catalog.rut.eligible_zip_codes


def compute_base_quote(context: PricingContext, catalog: PricingCatalog) -> BaseQuote:
    """Assemble the pre-discount total that seeds the adjustment pipeline."""
    service = context.service
    booking = context.booking

    base = max(0.0, context.base_price)
    multiplier = catalog.frequency_multiplier(booking.frequency)
    frequency_adjusted = base * multiplier

    add_ons_total = sum(catalog.add_on_price(service, key) for key in booking.add_ons)

    window_add_on = 0.0
    if (
        service.pricing_model != PricingModel.PER_WINDOW_BAND
        and service.window_bands
        and booking.window_quantities
    ):
        window_add_on = window_total(service, booking.window_quantities)

    subtotal = frequency_adjusted + add_ons_total + window_add_on
    tax_amount = subtotal * catalog.tax_rate
    total = subtotal + tax_amount

    rut_deduction = 0.0
    if is_rut_eligible(context, catalog):
        rut_deduction = total * catalog.rut.percentage
        total -= rut_deduction

    quote = BaseQuote(
        base_price=base,
        frequency_multiplier=multiplier,
        frequency_adjusted_base=frequency_adjusted,
        add_ons_total=add_ons_total,
        window_add_on_total=window_add_on,
        subtotal=subtotal,
        tax_rate=catalog.tax_rate,
        tax_amount=tax_amount,
        rut_deduction=rut_deduction,
        unrounded_total=total,
        total=max(0, round_currency(total)),
    )
    logger.debug(
        f"[calculator] {service.id}: base={base} ×{multiplier} + add-ons={add_ons_total} "
        f"+ windows={window_add_on} → subtotal={subtotal}, total={quote.total}"
    )
    return quote
