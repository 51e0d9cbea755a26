"""
Promotional codes.

Responsibility:
  Look up the submitted code (case-insensitive), check validity, applicable
  services and minimum order, compute the discount by promotion type, cap
  it, and reserve one use in the repository.  The engine commits the
  reservation once the whole quote succeeds.

Does NOT: fail the quote for a bad code.  Every rejection leaves the price
unchanged and explains itself in the `error` metadata field.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import FeatureType, PromoCodeType
from quote_pricing.models.schemas import PromoTier, PromotionalCode
from quote_pricing.models.state import (
    FeatureOutcome,
    PricingContext,
    PricingResult,
    PromoRedemption,
)
from quote_pricing.persistence.promo_repository import PromoCodeRepository

logger = logging.getLogger(__name__)


def tiered_discount(price: float, tiers: list[PromoTier]) -> float:
    """Discount for the highest threshold the price reaches."""
    for tier in sorted(tiers, key=lambda t: t.threshold, reverse=True):
        if price >= tier.threshold:
            return price * (tier.discount / 100)
    return 0.0


def compute_discount(promo: PromotionalCode, price: float, first_time: bool) -> float:
    if promo.type == PromoCodeType.PERCENTAGE_DISCOUNT:
        return price * (promo.value / 100)
    if promo.type == PromoCodeType.FIXED_DISCOUNT:
        return min(promo.value, price)
    if promo.type == PromoCodeType.TIERED_DISCOUNT:
        return tiered_discount(price, promo.tiers)
    if promo.type == PromoCodeType.FIRST_TIME_CUSTOMER and first_time:
        return price * (promo.value / 100)
    return 0.0


class PromotionalCodeFeature(BaseFeature):
    feature_type = FeatureType.PROMOTIONAL_CODES
    name = "Promotional Codes"

    def __init__(self, repository: PromoCodeRepository):
        self.repository = repository

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        submitted = (context.booking.promo_code or "").strip()
        if not submitted:
            return None

        promo = self.repository.get(submitted)
        if promo is None or not promo.is_valid_at(context.quoted_at):
            return self.unchanged(
                result,
                promo_code=submitted,
                error="Invalid or expired promotional code",
            )

        price = result.adjusted_price
        metadata: dict[str, Any] = {
            "promo_code": promo.code,
            "promotion_type": promo.type.value,
            "promotion_name": promo.name,
        }

        # ── Applicability ────────────────────────────────
        if promo.applicable_services and context.service.id not in promo.applicable_services:
            return self.unchanged(
                result,
                **metadata,
                error=f"Promotion does not apply to service {context.service.id}",
            )

        # ── Minimum order (checked before any discount) ──
        if promo.minimum_order and price < promo.minimum_order:
            return self.unchanged(
                result,
                **metadata,
                error=f"Minimum order of {promo.minimum_order:g} required for this promotion",
            )

        if promo.type == PromoCodeType.FIRST_TIME_CUSTOMER and not context.booking.is_first_time_customer:
            return self.unchanged(
                result,
                **metadata,
                error="Promotion is only valid for first-time customers",
            )

        # ── Discount + caps ──────────────────────────────
        discount = compute_discount(promo, price, context.booking.is_first_time_customer)
        if promo.max_discount is not None and discount > promo.max_discount:
            discount = promo.max_discount
            metadata["max_discount_applied"] = True
        discount = max(0.0, min(discount, price))
        metadata["discount_amount"] = discount

        # ── Reservation (committed by the engine) ────────
        if context.preview:
            metadata["reserved"] = False
            return self.discounted(result, discount, metadata)

        booking_id = context.booking.booking_id
        if not self.repository.reserve(promo.code, booking_id):
            return self.unchanged(
                result,
                **{k: v for k, v in metadata.items() if k != "discount_amount"},
                error="Promotional code usage limit reached",
            )

        metadata["reserved"] = True
        outcome = self.discounted(result, discount, metadata)
        outcome.redemptions.append(PromoRedemption(code=promo.code, booking_id=booking_id))
        return outcome
