"""
Tests: Base quote calculator and rounding.

Run with:
    pytest quote_pricing/tests/test_calculator.py -v
"""

from datetime import datetime, timezone

import pytest

from quote_pricing.models.enums import PricingModel
from quote_pricing.models.schemas import AddOn, FrequencyMultiplier, PricingCatalog, Service
from quote_pricing.models.state import BookingInput, PricingContext
from quote_pricing.persistence.catalog_store import default_catalog
from quote_pricing.pricing.calculator import compute_base_quote, round_currency
from quote_pricing.pricing.resolver import resolve_base_price

NOW = datetime(2025, 6, 11, 10, 0, tzinfo=timezone.utc)


def _context(catalog: PricingCatalog, **booking) -> PricingContext:
    booking_input = BookingInput(**booking)
    service = catalog.get_service(booking_input.service_id)
    return PricingContext(
        service=service,
        booking=booking_input,
        base_price=resolve_base_price(service, booking_input),
        quoted_at=NOW,
    )


class TestRounding:
    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (3.5, 4), (-2.5, -3), (2.4999, 2), (5243.75, 5244), (0, 0), ("12.5", 13)],
    )
    def test_half_rounds_away_from_zero(self, value, expected):
        assert round_currency(value) == expected

    def test_garbage_rounds_to_zero(self):
        assert round_currency("abc") == 0
        assert round_currency(None) == 0


class TestBaseQuote:
    def test_storstadning_with_oven_and_fridge(self):
        catalog = default_catalog()
        ctx = _context(
            catalog,
            service_id="storstadning",
            area=75,
            add_ons=["oven", "fridge"],
            frequency="weekly",
        )
        quote = compute_base_quote(ctx, catalog)
        assert quote.base_price == 3195
        assert quote.add_ons_total == 1000
        assert quote.subtotal == 4195
        assert quote.unrounded_total == pytest.approx(5243.75)
        assert quote.total == 5244

    def test_frequency_multiplies_only_base(self):
        catalog = default_catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, frequency="biweekly", add_ons=["oven"])
        quote = compute_base_quote(ctx, catalog)
        assert quote.frequency_multiplier == 1.15
        assert quote.frequency_adjusted_base == pytest.approx(1905 * 1.15)
        assert quote.add_ons_total == 500

    def test_add_ons_independent_of_frequency(self):
        catalog = PricingCatalog(
            services=[Service(id="s", pricing_model=PricingModel.FLAT_PER_AREA, flat_rate=50)],
            add_ons=[AddOn(key="oven", flat_price=500), AddOn(key="fridge", flat_price=500)],
            frequency_multipliers=[
                FrequencyMultiplier(key="weekly", multiplier=1.0),
                FrequencyMultiplier(key="monthly", multiplier=1.4),
            ],
        )
        totals = {
            freq: compute_base_quote(
                _context(catalog, service_id="s", area=0, add_ons=["oven", "fridge"], frequency=freq),
                catalog,
            ).total
            for freq in ("weekly", "monthly", "unknown", None)
        }
        assert len(set(totals.values())) == 1
        assert totals["weekly"] == 1250

    def test_unknown_frequency_defaults_to_one(self):
        catalog = default_catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, frequency="every-full-moon")
        assert compute_base_quote(ctx, catalog).frequency_multiplier == 1.0

    def test_unknown_add_on_costs_nothing(self):
        catalog = default_catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, add_ons=["jacuzzi"])
        assert compute_base_quote(ctx, catalog).add_ons_total == 0

    def test_service_add_on_overrides_catalog_add_on(self):
        catalog = default_catalog()
        catalog.add_ons.append(AddOn(key="oven", flat_price=9999))
        ctx = _context(catalog, service_id="storstadning", area=40, add_ons=["oven"])
        assert compute_base_quote(ctx, catalog).add_ons_total == 500

    def test_window_add_on_for_area_service(self):
        catalog = default_catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, window_quantities={1: 1})
        quote = compute_base_quote(ctx, catalog)
        assert quote.window_add_on_total == 900
        assert quote.subtotal == 1905 + 900

    def test_window_service_does_not_double_count_windows(self):
        catalog = default_catalog()
        ctx = _context(catalog, service_id="fonsterputsning", window_quantities={1: 2, 7: 1})
        quote = compute_base_quote(ctx, catalog)
        assert quote.base_price == 900
        assert quote.window_add_on_total == 0
        assert quote.total == 1125

    def test_zero_tax_rate(self):
        catalog = default_catalog()
        catalog.tax_rate = 0.0
        ctx = _context(catalog, service_id="storstadning", area=75)
        assert compute_base_quote(ctx, catalog).total == 3195


class TestRutDeduction:
    def _catalog(self) -> PricingCatalog:
        catalog = default_catalog()
        catalog.rut.enabled = True
        catalog.rut.eligible_zip_codes = ["11122"]
        return catalog

    def test_deduction_applied_to_post_tax_total(self):
        catalog = self._catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, zip_code="11122", use_rut=True)
        quote = compute_base_quote(ctx, catalog)
        assert quote.rut_deduction == pytest.approx(2381.25 * 0.30)
        assert quote.total == 1667

    def test_zip_outside_area_gets_no_deduction(self):
        catalog = self._catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, zip_code="99999", use_rut=True)
        assert compute_base_quote(ctx, catalog).rut_deduction == 0

    def test_customer_must_opt_in(self):
        catalog = self._catalog()
        ctx = _context(catalog, service_id="storstadning", area=40, zip_code="11122")
        assert compute_base_quote(ctx, catalog).rut_deduction == 0

    def test_ineligible_service(self):
        catalog = self._catalog()
        catalog.get_service("storstadning").rut_eligible = False
        ctx = _context(catalog, service_id="storstadning", area=40, zip_code="11122", use_rut=True)
        assert compute_base_quote(ctx, catalog).rut_deduction == 0
