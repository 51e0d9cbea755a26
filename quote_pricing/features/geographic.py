"""
Geographic pricing: exact zip multiplier, regional multiplier, and an
optional cost-of-living factor.  All three compound.
"""

from __future__ import annotations

from typing import Any, Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import FeatureType
from quote_pricing.models.schemas import GeographicConfig
from quote_pricing.models.state import FeatureOutcome, PricingContext, PricingResult
from quote_pricing.services.lookups import CostOfLivingLookup


def cost_of_living_multiplier(config: GeographicConfig, index: float) -> float:
    """Map a [0, 1] index linearly onto [col_min_multiplier, col_max_multiplier]."""
    index = min(1.0, max(0.0, index))
    span = config.col_max_multiplier - config.col_min_multiplier
    return config.col_min_multiplier + index * span


class GeographicPricingFeature(BaseFeature):
    feature_type = FeatureType.GEOGRAPHIC_PRICING
    name = "Geographic Pricing"

    def __init__(self, config: GeographicConfig, cost_of_living: CostOfLivingLookup):
        self.config = config
        self.cost_of_living = cost_of_living

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        zip_code = (context.booking.zip_code or "").strip()
        if not zip_code:
            return None

        multiplier = 1.0
        metadata: dict[str, Any] = {"zip_code": zip_code}

        zip_multiplier = self.config.zip_code_multipliers.get(zip_code)
        if zip_multiplier is not None:
            multiplier *= zip_multiplier
            metadata["zip_code_multiplier"] = zip_multiplier

        region = self.config.region_for(zip_code)
        metadata["region"] = region
        regional = self.config.regional_multipliers.get(region)
        if regional is not None:
            multiplier *= regional
            metadata["regional_multiplier"] = regional

        if self.config.cost_of_living_enabled:
            index = await self.cost_of_living(zip_code)
            if index is not None:
                col_multiplier = cost_of_living_multiplier(self.config, float(index))
                multiplier *= col_multiplier
                metadata["cost_of_living_index"] = index
                metadata["cost_of_living_multiplier"] = col_multiplier

        return self.scaled(result, multiplier, metadata)
