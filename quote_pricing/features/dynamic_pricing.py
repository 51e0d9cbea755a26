"""
Dynamic time/day pricing.

Peak vs off-peak multiplier from the booking hour and weekday vs weekend
multiplier from the booking day, and optionally an external market-conditions
multiplier.  They compound; a section that is not configured contributes 1.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import FeatureType
from quote_pricing.models.schemas import DayOfWeekPricing, DynamicPricingConfig, TimeBasedPricing
from quote_pricing.models.state import FeatureOutcome, PricingContext, PricingResult
from quote_pricing.services.lookups import MarketConditionsLookup, neutral_market


def time_of_day_multiplier(config: Optional[TimeBasedPricing], when: datetime) -> float:
    if config is None:
        return 1.0
    if config.peak_start_hour <= when.hour <= config.peak_end_hour:
        return config.peak_multiplier
    return config.off_peak_multiplier


def day_of_week_multiplier(config: Optional[DayOfWeekPricing], when: datetime) -> float:
    if config is None:
        return 1.0
    # Monday=0 … Saturday=5, Sunday=6
    if when.weekday() >= 5:
        return config.weekend_multiplier
    return config.weekday_multiplier


class DynamicPricingFeature(BaseFeature):
    feature_type = FeatureType.DYNAMIC_PRICING
    name = "Dynamic Pricing"

    def __init__(
        self,
        config: DynamicPricingConfig,
        market_conditions: MarketConditionsLookup = neutral_market,
    ):
        self.config = config
        self.market_conditions = market_conditions

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        config = self.config
        if config.time_based is None and config.day_of_week is None and not config.market_conditions:
            return None

        when = context.booking_date
        metadata: dict[str, float] = {}
        multiplier = 1.0

        if config.time_based is not None:
            time_multiplier = time_of_day_multiplier(config.time_based, when)
            multiplier *= time_multiplier
            metadata["time_multiplier"] = time_multiplier

        if config.day_of_week is not None:
            day_multiplier = day_of_week_multiplier(config.day_of_week, when)
            multiplier *= day_multiplier
            metadata["day_multiplier"] = day_multiplier

        if config.market_conditions:
            market_multiplier = await self.market_conditions(context)
            if market_multiplier is not None:
                multiplier *= float(market_multiplier)
                metadata["market_multiplier"] = float(market_multiplier)

        return self.scaled(result, multiplier, metadata)
