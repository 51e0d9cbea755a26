"""
Tests: Individual adjustment features (called directly, no pipeline).

Run with:
    pytest quote_pricing/tests/test_features.py -v
"""

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from quote_pricing.features import (
    ABTestingFeature,
    DemandPricingFeature,
    DynamicPricingFeature,
    GeographicPricingFeature,
    LoyaltyProgramFeature,
    PromotionalCodeFeature,
    SeasonalAdjustmentFeature,
    assign_variant,
)
from quote_pricing.features.geographic import cost_of_living_multiplier
from quote_pricing.features.seasonal import season_for_month
from quote_pricing.models.enums import DemandLevel, PricingModel, PromoCodeType, Season
from quote_pricing.models.schemas import (
    ABExperiment,
    ABTestingConfig,
    DayOfWeekPricing,
    DemandData,
    DemandPricingConfig,
    DynamicPricingConfig,
    ExperimentVariant,
    FrequencyBonus,
    GeographicConfig,
    HolidayWindow,
    LoyaltyProgram,
    LoyaltySnapshot,
    PromoTier,
    PromotionalCode,
    SeasonalConfig,
    Service,
    TimeBasedPricing,
)
from quote_pricing.models.state import BookingInput, PricingContext, PricingResult
from quote_pricing.persistence.promo_repository import PromoCodeRepository
from quote_pricing.services.lookups import no_cost_of_living, no_loyalty_data

NOW = datetime(2025, 6, 11, 10, 0, tzinfo=timezone.utc)  # a Wednesday


def _service(service_id: str = "storstadning") -> Service:
    return Service(id=service_id, pricing_model=PricingModel.FLAT_PER_AREA, flat_rate=10)


def _context(service: Service | None = None, *, loyalty=None, preview=False, **booking) -> PricingContext:
    service = service or _service()
    booking.setdefault("service_id", service.id)
    return PricingContext(
        service=service,
        booking=BookingInput(**booking),
        quoted_at=NOW,
        loyalty=loyalty,
        preview=preview,
    )


def _result(price: float) -> PricingResult:
    return PricingResult(original_price=price, adjusted_price=price)


def _apply(feature, context: PricingContext, price: float):
    return asyncio.run(feature.apply(context, _result(price)))


# ── Dynamic pricing ──────────────────────────────────────


class TestDynamicPricing:
    def _feature(self) -> DynamicPricingFeature:
        return DynamicPricingFeature(
            DynamicPricingConfig(
                time_based=TimeBasedPricing(peak_multiplier=1.1, off_peak_multiplier=0.95),
                day_of_week=DayOfWeekPricing(weekday_multiplier=1.0, weekend_multiplier=1.15),
            )
        )

    def test_weekday_peak_hour(self):
        outcome = _apply(self._feature(), _context(date=datetime(2025, 6, 11, 10, tzinfo=timezone.utc)), 1000)
        assert outcome.adjusted_price == 1100
        assert outcome.metadata["time_multiplier"] == 1.1
        assert outcome.metadata["day_multiplier"] == 1.0

    def test_weekend_evening_compounds(self):
        saturday_evening = datetime(2025, 6, 14, 20, tzinfo=timezone.utc)
        outcome = _apply(self._feature(), _context(date=saturday_evening), 2000)
        assert outcome.adjusted_price == 2185
        assert outcome.metadata["total_multiplier"] == pytest.approx(0.95 * 1.15)

    def test_peak_end_hour_is_inclusive(self):
        outcome = _apply(self._feature(), _context(date=datetime(2025, 6, 11, 17, 30, tzinfo=timezone.utc)), 1000)
        assert outcome.metadata["time_multiplier"] == 1.1

    def test_booking_date_defaults_to_quote_time(self):
        outcome = _apply(self._feature(), _context(), 1000)
        assert outcome.adjusted_price == 1100

    def test_unconfigured_is_noop(self):
        assert _apply(DynamicPricingFeature(DynamicPricingConfig()), _context(), 1000) is None

    def test_market_conditions_compound_with_time(self):
        async def market(context):
            return 1.1

        config = DynamicPricingConfig(
            time_based=TimeBasedPricing(peak_multiplier=1.2), market_conditions=True
        )
        outcome = _apply(DynamicPricingFeature(config, market), _context(), 1000)
        assert outcome.adjusted_price == 1320
        assert outcome.metadata["market_multiplier"] == 1.1

    def test_market_lookup_without_data_is_neutral(self):
        feature = DynamicPricingFeature(DynamicPricingConfig(market_conditions=True))
        outcome = _apply(feature, _context(), 1000)
        assert outcome.adjusted_price == 1000
        assert "market_multiplier" not in outcome.metadata

    def test_market_lookup_ignored_unless_enabled(self):
        async def market(context):
            return 2.0

        assert _apply(DynamicPricingFeature(DynamicPricingConfig(), market), _context(), 1000) is None


# ── Seasonal ─────────────────────────────────────────────


class TestSeasonal:
    @pytest.mark.parametrize(
        "month,season",
        [(1, Season.WINTER), (3, Season.SPRING), (7, Season.SUMMER), (9, Season.AUTUMN), (12, Season.WINTER)],
    )
    def test_season_for_month(self, month, season):
        assert season_for_month(month) == season

    def test_month_and_season_compound(self):
        feature = SeasonalAdjustmentFeature(
            SeasonalConfig(monthly_multipliers={7: 1.1}, seasonal_multipliers={Season.SUMMER: 1.2})
        )
        outcome = _apply(feature, _context(date=datetime(2025, 7, 15, 10, tzinfo=timezone.utc)), 1000)
        assert outcome.adjusted_price == 1320
        assert outcome.metadata["season"] == "summer"
        assert outcome.metadata["month"] == 7

    def test_recurring_holiday_window(self):
        feature = SeasonalAdjustmentFeature(
            SeasonalConfig(
                seasonal_multipliers={Season.SUMMER: 1.2},
                holidays=[
                    HolidayWindow(
                        name="Midsommar",
                        start=date(2000, 6, 19),
                        end=date(2000, 6, 21),
                        multiplier=1.5,
                        recurring=True,
                    )
                ],
            )
        )
        outcome = _apply(feature, _context(date=datetime(2024, 6, 20, 9, tzinfo=timezone.utc)), 1000)
        assert outcome.adjusted_price == 1800
        assert outcome.metadata["holiday"] == "Midsommar"

    def test_holiday_window_wrapping_new_year(self):
        window = HolidayWindow(name="Jul", start=date(2000, 12, 24), end=date(2001, 1, 6), recurring=True)
        assert window.contains(date(2025, 12, 31))
        assert window.contains(date(2025, 1, 2))
        assert not window.contains(date(2025, 6, 1))

    def test_non_recurring_window_checks_year(self):
        window = HolidayWindow(start=date(2025, 12, 24), end=date(2025, 12, 26))
        assert window.contains(date(2025, 12, 25))
        assert not window.contains(date(2024, 12, 25))

    def test_nothing_configured_keeps_price(self):
        outcome = _apply(SeasonalAdjustmentFeature(SeasonalConfig()), _context(), 1000)
        assert outcome.adjusted_price == 1000
        assert outcome.metadata["season"] == "summer"


# ── Promotional codes ────────────────────────────────────


class TestPromotionalCodes:
    def _feature(self, *codes: PromotionalCode) -> PromotionalCodeFeature:
        return PromotionalCodeFeature(PromoCodeRepository(codes))

    def test_no_code_is_noop(self):
        feature = self._feature(PromotionalCode(code="SAVE10", value=10))
        assert _apply(feature, _context(), 1000) is None

    def test_minimum_order_rejects_without_discount(self):
        feature = self._feature(PromotionalCode(code="SAVE10", value=10, minimum_order=1000))
        outcome = _apply(feature, _context(promo_code="SAVE10", booking_id="b1"), 900)
        assert outcome.adjusted_price == 900
        assert "Minimum order" in outcome.metadata["error"]
        assert feature.repository.usage_count("SAVE10") == 0

    def test_percentage_discount(self):
        feature = self._feature(PromotionalCode(code="SAVE10", value=10))
        outcome = _apply(feature, _context(promo_code="SAVE10", booking_id="b1"), 5244)
        assert outcome.adjusted_price == 4720
        assert outcome.metadata["discount_amount"] == pytest.approx(524.4)
        assert outcome.metadata["reserved"] is True
        assert outcome.redemptions[0].code == "SAVE10"
        assert outcome.redemptions[0].booking_id == "b1"
        # Counted only when the engine commits the finished quote
        assert feature.repository.usage_count("SAVE10") == 0
        assert feature.repository.reserved_count("SAVE10") == 1

    def test_code_lookup_is_case_insensitive(self):
        feature = self._feature(PromotionalCode(code="RENSAVE10", value=10))
        upper = _apply(feature, _context(promo_code="RENSAVE10", preview=True), 1000)
        lower = _apply(feature, _context(promo_code="  rensave10 ", preview=True), 1000)
        assert upper.adjusted_price == lower.adjusted_price == 900

    def test_fixed_discount_cannot_exceed_price(self):
        feature = self._feature(PromotionalCode(code="MINUS300", type=PromoCodeType.FIXED_DISCOUNT, value=300))
        outcome = _apply(feature, _context(promo_code="MINUS300"), 200)
        assert outcome.adjusted_price == 0
        assert outcome.metadata["discount_amount"] == 200

    def test_max_discount_caps_percentage(self):
        feature = self._feature(PromotionalCode(code="BIG20", value=20, max_discount=100))
        outcome = _apply(feature, _context(promo_code="BIG20"), 1000)
        assert outcome.adjusted_price == 900
        assert outcome.metadata["max_discount_applied"] is True

    def test_tiered_discount_uses_highest_reached_threshold(self):
        promo = PromotionalCode(
            code="TIERS",
            type=PromoCodeType.TIERED_DISCOUNT,
            tiers=[
                PromoTier(threshold=500, discount=5),
                PromoTier(threshold=2000, discount=15),
                PromoTier(threshold=1000, discount=10),
            ],
        )
        outcome = _apply(self._feature(promo), _context(promo_code="TIERS"), 1500)
        assert outcome.adjusted_price == 1350

    def test_first_time_code_requires_first_time_customer(self):
        promo = PromotionalCode(code="WELCOME", type=PromoCodeType.FIRST_TIME_CUSTOMER, value=15)
        feature = self._feature(promo)
        rejected = _apply(feature, _context(promo_code="WELCOME"), 1000)
        assert rejected.adjusted_price == 1000
        assert "first-time" in rejected.metadata["error"]

        accepted = _apply(feature, _context(promo_code="WELCOME", is_first_time_customer=True), 1000)
        assert accepted.adjusted_price == 850

    def test_expired_code(self):
        promo = PromotionalCode(code="OLD", value=10, valid_until=NOW - timedelta(days=1))
        outcome = _apply(self._feature(promo), _context(promo_code="OLD"), 1000)
        assert outcome.adjusted_price == 1000
        assert outcome.metadata["error"] == "Invalid or expired promotional code"

    def test_not_yet_valid_code(self):
        promo = PromotionalCode(code="SOON", value=10, valid_from=NOW + timedelta(days=1))
        outcome = _apply(self._feature(promo), _context(promo_code="SOON"), 1000)
        assert outcome.metadata["error"] == "Invalid or expired promotional code"

    def test_unknown_code(self):
        outcome = _apply(self._feature(), _context(promo_code="NOPE"), 1000)
        assert outcome.adjusted_price == 1000
        assert "error" in outcome.metadata

    def test_disabled_code(self):
        promo = PromotionalCode(code="OFF", value=10, enabled=False)
        outcome = _apply(self._feature(promo), _context(promo_code="OFF"), 1000)
        assert outcome.adjusted_price == 1000

    def test_service_restriction(self):
        promo = PromotionalCode(code="WINDOWS", value=10, applicable_services=["fonsterputsning"])
        outcome = _apply(self._feature(promo), _context(promo_code="WINDOWS"), 1000)
        assert outcome.adjusted_price == 1000
        assert "storstadning" in outcome.metadata["error"]

    def test_usage_limit_exhausted(self):
        feature = self._feature(PromotionalCode(code="ONCE", value=10, usage_limit=1))
        first = _apply(feature, _context(promo_code="ONCE", booking_id="b1"), 1000)
        second = _apply(feature, _context(promo_code="ONCE", booking_id="b2"), 1000)
        assert first.adjusted_price == 900
        assert second.adjusted_price == 1000
        assert second.metadata["error"] == "Promotional code usage limit reached"
        assert second.redemptions == []
        assert feature.repository.reserved_count("ONCE") == 1

    def test_preview_does_not_redeem(self):
        feature = self._feature(PromotionalCode(code="SAVE10", value=10))
        outcome = _apply(feature, _context(promo_code="SAVE10", preview=True), 1000)
        assert outcome.adjusted_price == 900
        assert outcome.metadata["reserved"] is False
        assert outcome.redemptions == []
        assert feature.repository.reserved_count("SAVE10") == 0


# ── Loyalty ──────────────────────────────────────────────


class TestLoyalty:
    def _program(self) -> LoyaltyProgram:
        return LoyaltyProgram(
            tier_discounts={"gold": 10},
            point_value=1.0,
            points_threshold=100,
            frequency_bonus=FrequencyBonus(threshold=10, discount=5),
        )

    def test_tier_points_and_bonus_sum(self):
        feature = LoyaltyProgramFeature(self._program(), no_loyalty_data)
        snapshot = LoyaltySnapshot(tier="gold", points=2000, total_bookings=12)
        ctx = _context(loyalty=snapshot, customer_id="c1", redeem_points=True)
        outcome = _apply(feature, ctx, 1000)
        # 100 tier + 500 points (capped at half the price) + 50 bonus
        assert outcome.adjusted_price == 350
        assert outcome.metadata["points_discount"] == 500
        assert outcome.metadata["points_redeemed"] == 500

    def test_points_only_when_requested(self):
        feature = LoyaltyProgramFeature(self._program(), no_loyalty_data)
        snapshot = LoyaltySnapshot(tier="gold", points=2000, total_bookings=0)
        outcome = _apply(feature, _context(loyalty=snapshot, customer_id="c1"), 1000)
        assert outcome.adjusted_price == 900
        assert "points_discount" not in outcome.metadata

    def test_points_below_threshold_ignored(self):
        feature = LoyaltyProgramFeature(self._program(), no_loyalty_data)
        snapshot = LoyaltySnapshot(tier="bronze", points=50)
        outcome = _apply(feature, _context(loyalty=snapshot, customer_id="c1", redeem_points=True), 1000)
        assert outcome.adjusted_price == 1000

    def test_anonymous_customer_is_noop(self):
        feature = LoyaltyProgramFeature(self._program(), no_loyalty_data)
        snapshot = LoyaltySnapshot(tier="gold", points=2000)
        assert _apply(feature, _context(loyalty=snapshot), 1000) is None

    def test_snapshot_fetched_from_lookup(self):
        seen = []

        async def lookup(customer_id):
            seen.append(customer_id)
            return LoyaltySnapshot(tier="gold")

        feature = LoyaltyProgramFeature(self._program(), lookup)
        outcome = _apply(feature, _context(customer_id="c42"), 1000)
        assert seen == ["c42"]
        assert outcome.adjusted_price == 900

    def test_no_snapshot_available(self):
        feature = LoyaltyProgramFeature(self._program(), no_loyalty_data)
        assert _apply(feature, _context(customer_id="c1"), 1000) is None

    def test_disabled_program(self):
        program = self._program()
        program.enabled = False
        feature = LoyaltyProgramFeature(program, no_loyalty_data)
        snapshot = LoyaltySnapshot(tier="gold")
        assert _apply(feature, _context(loyalty=snapshot, customer_id="c1"), 1000) is None


# ── A/B testing ──────────────────────────────────────────


class TestABTesting:
    def _experiment(self, **overrides) -> ABExperiment:
        data = dict(
            id="price-test",
            variants=[
                ExperimentVariant(id="control", price_multiplier=1.0),
                ExperimentVariant(id="treatment", price_multiplier=1.1),
            ],
        )
        data.update(overrides)
        return ABExperiment(**data)

    def test_assignment_is_deterministic(self):
        experiment = self._experiment()
        for subject in ("c1", "c2", "session-abc", "x" * 40):
            assert assign_variant(subject, experiment) == assign_variant(subject, experiment)

    def test_assignment_covers_all_variants(self):
        experiment = self._experiment()
        seen = {assign_variant(f"customer-{i}", experiment).id for i in range(200)}
        assert seen == {"control", "treatment"}

    def test_traffic_allocation_respected(self):
        experiment = self._experiment(traffic_allocation={"control": 0, "treatment": 1})
        for i in range(50):
            assert assign_variant(f"customer-{i}", experiment).id == "treatment"

    def test_multipliers_compound_across_experiments(self):
        config = ABTestingConfig(
            experiments=[
                ABExperiment(id="e1", variants=[ExperimentVariant(id="a", price_multiplier=1.1)]),
                ABExperiment(id="e2", variants=[ExperimentVariant(id="b", price_multiplier=1.2)]),
            ]
        )
        outcome = _apply(ABTestingFeature(config), _context(customer_id="c1"), 1000)
        assert outcome.adjusted_price == 1320
        assert [e["experiment_id"] for e in outcome.metadata["experiments"]] == ["e1", "e2"]
        assert [(e.experiment_id, e.variant_id) for e in outcome.exposures] == [("e1", "a"), ("e2", "b")]

    def test_session_id_used_when_anonymous(self):
        config = ABTestingConfig(
            experiments=[ABExperiment(id="e1", variants=[ExperimentVariant(id="a", price_multiplier=1.1)])]
        )
        outcome = _apply(ABTestingFeature(config), _context(session_id="s-9"), 1000)
        assert outcome.exposures[0].subject_id == "s-9"

    def test_no_subject_is_noop(self):
        config = ABTestingConfig(experiments=[self._experiment()])
        assert _apply(ABTestingFeature(config), _context(), 1000) is None

    def test_inactive_or_ended_experiments_skipped(self):
        config = ABTestingConfig(
            experiments=[
                ABExperiment(id="off", active=False, variants=[ExperimentVariant(id="a", price_multiplier=2)]),
                ABExperiment(
                    id="ended",
                    end_date=NOW - timedelta(days=1),
                    variants=[ExperimentVariant(id="a", price_multiplier=2)],
                ),
            ]
        )
        assert _apply(ABTestingFeature(config), _context(customer_id="c1"), 1000) is None


# ── Demand ───────────────────────────────────────────────


class TestDemand:
    def _feature(self, data) -> DemandPricingFeature:
        async def lookup(context):
            return data

        return DemandPricingFeature(DemandPricingConfig(), lookup)

    def test_high_demand_with_capacity_constraint(self):
        outcome = _apply(self._feature(DemandData(level=DemandLevel.HIGH, capacity_utilization=0.95)), _context(), 1000)
        assert outcome.adjusted_price == 1380
        assert outcome.metadata["capacity_constrained"] is True

    def test_low_demand(self):
        outcome = _apply(self._feature(DemandData(level=DemandLevel.VERY_LOW)), _context(), 1000)
        assert outcome.adjusted_price == 800

    def test_lookup_may_return_plain_dict(self):
        outcome = _apply(self._feature({"level": "very_high", "capacity_utilization": 0.5}), _context(), 1000)
        assert outcome.adjusted_price == 1300


# ── Geographic ───────────────────────────────────────────


class TestGeographic:
    def test_zip_region_and_cost_of_living_compound(self):
        async def cost_of_living(zip_code):
            return 0.5

        config = GeographicConfig(
            zip_code_multipliers={"11122": 1.1},
            regional_multipliers={"northeast": 1.05},
            cost_of_living_enabled=True,
        )
        outcome = _apply(GeographicPricingFeature(config, cost_of_living), _context(zip_code="11122"), 1000)
        assert outcome.adjusted_price == 1155
        assert outcome.metadata["region"] == "northeast"
        assert outcome.metadata["cost_of_living_multiplier"] == pytest.approx(1.0)

    def test_region_from_first_digit(self):
        config = GeographicConfig(regional_multipliers={"west": 0.9})
        outcome = _apply(GeographicPricingFeature(config, no_cost_of_living), _context(zip_code="90210"), 1000)
        assert outcome.adjusted_price == 900

    def test_missing_zip_is_noop(self):
        feature = GeographicPricingFeature(GeographicConfig(), no_cost_of_living)
        assert _apply(feature, _context(), 1000) is None

    @pytest.mark.parametrize("index,expected", [(0, 0.8), (1, 1.2), (2, 1.2), (-1, 0.8), (0.25, 0.9)])
    def test_cost_of_living_mapping(self, index, expected):
        assert cost_of_living_multiplier(GeographicConfig(), index) == pytest.approx(expected)
