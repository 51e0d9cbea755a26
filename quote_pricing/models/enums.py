from enum import Enum


class PricingModel(str, Enum):
    FLAT_PER_AREA = "flat-per-area"
    TIERED_PER_AREA = "tiered-per-area"
    PER_ROOM = "per-room"
    PER_WINDOW_BAND = "per-window-band"
    HOURLY_BY_SIZE = "hourly-by-size"
    BULK_DISCOUNT = "bulk-discount"


class FeatureType(str, Enum):
    """Adjustment features, listed in pipeline order."""
    DYNAMIC_PRICING = "dynamic_pricing"
    PROMOTIONAL_CODES = "promotional_codes"
    SEASONAL_ADJUSTMENTS = "seasonal_adjustments"
    LOYALTY_PROGRAM = "loyalty_program"
    AB_TESTING = "ab_testing"
    DEMAND_BASED_PRICING = "demand_based_pricing"
    GEOGRAPHIC_PRICING = "geographic_pricing"


class PromoCodeType(str, Enum):
    PERCENTAGE_DISCOUNT = "percentage-discount"
    FIXED_DISCOUNT = "fixed-discount"
    TIERED_DISCOUNT = "tiered-discount"
    FIRST_TIME_CUSTOMER = "first-time-customer"


class DemandLevel(str, Enum):
    VERY_LOW = "very_low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    VERY_HIGH = "very_high"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"
