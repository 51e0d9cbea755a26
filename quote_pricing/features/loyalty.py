"""
Loyalty program.

Tier discount, points redemption and frequency bonus are each computed
against the running price, summed, and subtracted once.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import FeatureType
from quote_pricing.models.schemas import LoyaltyProgram, LoyaltySnapshot
from quote_pricing.models.state import FeatureOutcome, PricingContext, PricingResult
from quote_pricing.services.lookups import LoyaltyLookup


class LoyaltyProgramFeature(BaseFeature):
    feature_type = FeatureType.LOYALTY_PROGRAM
    name = "Loyalty Program"

    def __init__(self, program: LoyaltyProgram, lookup: LoyaltyLookup):
        self.program = program
        self.lookup = lookup

    async def _snapshot(self, context: PricingContext) -> Optional[LoyaltySnapshot]:
        if context.loyalty is not None:
            return context.loyalty
        return await self.lookup(context.booking.customer_id)

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        if not self.program.enabled or not context.booking.customer_id:
            return None

        snapshot = await self._snapshot(context)
        if snapshot is None:
            return None

        program = self.program
        price = result.adjusted_price
        discount = 0.0
        metadata: dict[str, Any] = {
            "loyalty_tier": snapshot.tier,
            "loyalty_points": snapshot.points,
            "total_bookings": snapshot.total_bookings,
        }

        # ── Tier discount ────────────────────────────────
        tier_pct = program.tier_discounts.get(snapshot.tier)
        if tier_pct:
            discount += price * (tier_pct / 100)
            metadata["tier_discount"] = tier_pct

        # ── Points redemption ────────────────────────────
        if (
            context.booking.redeem_points
            and program.point_value > 0
            and snapshot.points >= program.points_threshold
        ):
            points_discount = min(
                snapshot.points * program.point_value,
                price * program.max_points_share,
            )
            discount += points_discount
            metadata["points_discount"] = points_discount
            metadata["points_redeemed"] = math.floor(points_discount / program.point_value)

        # ── Frequency bonus ──────────────────────────────
        bonus = program.frequency_bonus
        if bonus is not None and snapshot.total_bookings >= bonus.threshold:
            discount += price * (bonus.discount / 100)
            metadata["frequency_bonus"] = bonus.discount

        metadata["total_discount"] = discount
        return self.discounted(result, discount, metadata)
