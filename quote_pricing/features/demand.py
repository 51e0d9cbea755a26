"""Demand-based pricing (registered only when enabled in the catalog)."""

from __future__ import annotations

from typing import Any, Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import DemandLevel, FeatureType
from quote_pricing.models.schemas import DemandData, DemandPricingConfig
from quote_pricing.models.state import FeatureOutcome, PricingContext, PricingResult
from quote_pricing.services.lookups import DemandLookup


def demand_multiplier(config: DemandPricingConfig, data: DemandData) -> float:
    multipliers = {
        DemandLevel.VERY_HIGH: config.very_high_multiplier,
        DemandLevel.HIGH: config.high_multiplier,
        DemandLevel.NORMAL: 1.0,
        DemandLevel.LOW: config.low_multiplier,
        DemandLevel.VERY_LOW: config.very_low_multiplier,
    }
    return multipliers.get(data.level, 1.0)


class DemandPricingFeature(BaseFeature):
    feature_type = FeatureType.DEMAND_BASED_PRICING
    name = "Demand-Based Pricing"

    def __init__(self, config: DemandPricingConfig, lookup: DemandLookup):
        self.config = config
        self.lookup = lookup

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        data = await self.lookup(context)
        if not isinstance(data, DemandData):
            data = DemandData.model_validate(data)

        multiplier = demand_multiplier(self.config, data)
        metadata: dict[str, Any] = {
            "demand_level": data.level.value,
            "capacity_utilization": data.capacity_utilization,
        }

        if data.capacity_utilization > self.config.capacity_threshold:
            multiplier *= self.config.capacity_constraint_multiplier
            metadata["capacity_constrained"] = True

        metadata["demand_multiplier"] = multiplier
        return self.scaled(result, multiplier, metadata)
