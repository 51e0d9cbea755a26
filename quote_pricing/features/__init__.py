from .base_feature import BaseFeature, FeatureTimeoutError
from .dynamic_pricing import DynamicPricingFeature
from .promotional_codes import PromotionalCodeFeature
from .seasonal import SeasonalAdjustmentFeature
from .loyalty import LoyaltyProgramFeature
from .ab_testing import ABTestingFeature, assign_variant
from .demand import DemandPricingFeature
from .geographic import GeographicPricingFeature

__all__ = [
    "BaseFeature",
    "FeatureTimeoutError",
    "DynamicPricingFeature",
    "PromotionalCodeFeature",
    "SeasonalAdjustmentFeature",
    "LoyaltyProgramFeature",
    "ABTestingFeature",
    "assign_variant",
    "DemandPricingFeature",
    "GeographicPricingFeature",
]
