"""
Read-only configuration schemas consumed by the pricing engine.
Each schema is owned by the tenant's catalog; the engine never mutates them
during a quote (promo usage counters live in the PromoCodeRepository).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .enums import PricingModel, PromoCodeType, DemandLevel, Season, FeatureType


def _ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes in config are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Service catalog ──────────────────────────────────────


class PricingTier(BaseModel):
    """Inclusive numeric range mapped to a unit price (or a fixed price)."""
    min_value: float = 0.0
    max_value: Optional[float] = None  # None = unbounded
    price_per_unit: float = 0.0
    flat_price: Optional[float] = None  # fixed-price tier when set

    def contains(self, value: float) -> bool:
        if value < self.min_value:
            return False
        return self.max_value is None or value <= self.max_value


class HourRate(BaseModel):
    """Area band priced as estimated hours times an hourly rate."""
    min_value: float = 0.0
    max_value: Optional[float] = None
    hours: float = 0.0
    price_per_hour: float = 0.0

    def contains(self, value: float) -> bool:
        if value < self.min_value:
            return False
        return self.max_value is None or value <= self.max_value


class BulkDiscount(BaseModel):
    min_value: float  # area threshold
    percentage: float


class WindowBand(BaseModel):
    band_index: int
    unit_price: float = 0.0
    label: str = ""


class AddOn(BaseModel):
    key: str
    flat_price: float = 0.0
    label: str = ""


class FrequencyMultiplier(BaseModel):
    key: str
    multiplier: float = 1.0


class Service(BaseModel):
    """A bookable service and the parameters of its pricing model."""
    id: str
    name: str = ""
    pricing_model: PricingModel = PricingModel.FLAT_PER_AREA

    # flat-per-area, bulk-discount (per-unit base)
    flat_rate: float = 0.0
    bulk_discounts: list[BulkDiscount] = []

    # tiered-per-area
    tiers: list[PricingTier] = []
    default_rate: float = 0.0  # per unit, used when no tier matches

    # hourly-by-size
    hour_rates: list[HourRate] = []

    # per-room
    per_room_rate: float = 0.0
    room_types: dict[str, float] = {}  # room type -> price, for room breakdowns
    area_per_room: float = 25.0  # room-count estimate when only area is given

    # per-window-band (also priced as an add-on for area services)
    window_bands: list[WindowBand] = []
    premium_band_start: int = 7  # bands at or above this index are premium
    window_minimum_charge: float = 900.0

    add_ons: list[AddOn] = []  # override catalog add-ons with the same key
    rut_eligible: bool = False


# ── Promotional codes ────────────────────────────────────


class PromoTier(BaseModel):
    threshold: float
    discount: float  # percent


class PromotionalCode(BaseModel):
    code: str
    name: str = ""
    type: PromoCodeType = PromoCodeType.PERCENTAGE_DISCOUNT
    value: float = 0.0
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    minimum_order: float = 0.0
    max_discount: Optional[float] = None
    tiers: list[PromoTier] = []
    applicable_services: list[str] = []  # empty = every service
    enabled: bool = True
    redeemed_bookings: list[str] = []

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Promotional code must not be empty")
        return code

    @field_validator("valid_from", "valid_until")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _ensure_aware(value)

    def is_valid_at(self, now: datetime) -> bool:
        now = _ensure_aware(now)
        if not self.enabled:
            return False
        if self.valid_from is not None and now < self.valid_from:
            return False
        if self.valid_until is not None and now > self.valid_until:
            return False
        return self.usage_limit is None or self.usage_count < self.usage_limit


# ── Loyalty ──────────────────────────────────────────────


class FrequencyBonus(BaseModel):
    threshold: int
    discount: float  # percent


class LoyaltyProgram(BaseModel):
    id: str = "default"
    name: str = ""
    enabled: bool = True
    tier_discounts: dict[str, float] = {}  # tier -> percent
    point_value: float = 0.01
    points_threshold: int = 0
    max_points_share: float = 0.5  # points cover at most this share of the price
    frequency_bonus: Optional[FrequencyBonus] = None


class LoyaltySnapshot(BaseModel):
    """Customer loyalty state, owned by the customer subsystem."""
    tier: str = ""
    points: int = 0
    total_bookings: int = 0


# ── A/B experiments ──────────────────────────────────────


class ExperimentVariant(BaseModel):
    id: str
    price_multiplier: float = 1.0


class ABExperiment(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    variants: list[ExperimentVariant] = []
    traffic_allocation: dict[str, float] = {}  # variant id -> weight; empty = uniform

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _ensure_aware(value)

    def is_running_at(self, now: datetime) -> bool:
        now = _ensure_aware(now)
        if not self.active or not self.variants:
            return False
        if self.start_date is not None and now < self.start_date:
            return False
        return self.end_date is None or now <= self.end_date


class ABTestingConfig(BaseModel):
    experiments: list[ABExperiment] = []


# ── Feature configs ──────────────────────────────────────


class TimeBasedPricing(BaseModel):
    peak_start_hour: int = 9
    peak_end_hour: int = 17  # inclusive
    peak_multiplier: float = 1.0
    off_peak_multiplier: float = 1.0


class DayOfWeekPricing(BaseModel):
    weekday_multiplier: float = 1.0
    weekend_multiplier: float = 1.0


class DynamicPricingConfig(BaseModel):
    time_based: Optional[TimeBasedPricing] = None
    day_of_week: Optional[DayOfWeekPricing] = None
    market_conditions: bool = False  # consult the market-conditions lookup


class HolidayWindow(BaseModel):
    name: str = ""
    start: date
    end: date  # inclusive
    multiplier: float = 1.0
    recurring: bool = False  # compare month/day only

    def contains(self, day: date) -> bool:
        if not self.recurring:
            return self.start <= day <= self.end
        key = (day.month, day.day)
        start = (self.start.month, self.start.day)
        end = (self.end.month, self.end.day)
        if start <= end:
            return start <= key <= end
        # Window wraps the new year, e.g. Dec 24 – Jan 6
        return key >= start or key <= end


class SeasonalConfig(BaseModel):
    monthly_multipliers: dict[int, float] = {}
    seasonal_multipliers: dict[Season, float] = {}
    holidays: list[HolidayWindow] = []


class DemandPricingConfig(BaseModel):
    very_high_multiplier: float = 1.3
    high_multiplier: float = 1.15
    low_multiplier: float = 0.9
    very_low_multiplier: float = 0.8
    capacity_threshold: float = 0.9
    capacity_constraint_multiplier: float = 1.2


class DemandData(BaseModel):
    level: DemandLevel = DemandLevel.NORMAL
    capacity_utilization: float = 0.0


DEFAULT_REGION_MAP: dict[str, str] = {
    "0": "northeast",
    "1": "northeast",
    "2": "northeast",
    "3": "southeast",
    "4": "southeast",
    "5": "central",
    "6": "central",
    "7": "southwest",
    "8": "west",
    "9": "west",
}


class GeographicConfig(BaseModel):
    zip_code_multipliers: dict[str, float] = {}
    region_map: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_REGION_MAP))
    regional_multipliers: dict[str, float] = {}
    cost_of_living_enabled: bool = False
    col_min_multiplier: float = 0.8
    col_max_multiplier: float = 1.2

    def region_for(self, zip_code: str) -> str:
        zip_code = zip_code.strip()
        if not zip_code:
            return "unknown"
        return self.region_map.get(zip_code[0], "unknown")


class FeatureToggles(BaseModel):
    """Which adjustment features are registered in the pipeline."""
    dynamic_pricing: bool = True
    promotional_codes: bool = True
    seasonal_adjustments: bool = True
    loyalty_program: bool = True
    ab_testing: bool = True
    demand_based_pricing: bool = False
    geographic_pricing: bool = True

    def is_enabled(self, feature: FeatureType) -> bool:
        return bool(getattr(self, feature.value, False))


class RutConfig(BaseModel):
    """Location-gated percentage deduction on the post-tax total."""
    enabled: bool = False
    percentage: float = 0.30
    eligible_zip_codes: list[str] = []


# ── Catalog bundle ───────────────────────────────────────


class PricingCatalog(BaseModel):
    """Everything a tenant configures for pricing, loaded once per engine."""
    tenant_id: str = "default"
    currency: str = "SEK"
    services: list[Service] = []
    frequency_multipliers: list[FrequencyMultiplier] = []
    add_ons: list[AddOn] = []
    tax_rate: float = 0.25
    rut: RutConfig = Field(default_factory=RutConfig)
    promo_codes: list[PromotionalCode] = []
    loyalty_program: LoyaltyProgram = Field(default_factory=LoyaltyProgram)
    ab_testing: ABTestingConfig = Field(default_factory=ABTestingConfig)
    dynamic_pricing: DynamicPricingConfig = Field(default_factory=DynamicPricingConfig)
    seasonal: SeasonalConfig = Field(default_factory=SeasonalConfig)
    demand: DemandPricingConfig = Field(default_factory=DemandPricingConfig)
    geographic: GeographicConfig = Field(default_factory=GeographicConfig)
    features: FeatureToggles = Field(default_factory=FeatureToggles)

    def get_service(self, service_id: str) -> Optional[Service]:
        for service in self.services:
            if service.id == service_id:
                return service
        return None

    def frequency_multiplier(self, key: Optional[str]) -> float:
        """Multiplier for a frequency key; unknown or missing keys are 1."""
        if not key:
            return 1.0
        for freq in self.frequency_multipliers:
            if freq.key == key:
                return freq.multiplier
        return 1.0

    def add_on_price(self, service: Service, key: str) -> float:
        """Flat price of an add-on; unknown keys cost nothing."""
        for add_on in service.add_ons:
            if add_on.key == key:
                return add_on.flat_price
        for add_on in self.add_ons:
            if add_on.key == key:
                return add_on.flat_price
        return 0.0
