"""
PricingEngine — the one class booking and admin-preview flows import.

This is the facade over:
  • Tier/model resolver + base quote calculator
  • Adjustment pipeline (dynamic, promo, seasonal, loyalty, A/B, demand, geo)
  • Promo code repository, quote history ledger, experiment exposure log

Construct one engine per tenant/process and pass it by reference; it holds
no module-level state.

Usage:
    engine = PricingEngine(catalog)
    result = await engine.quote(BookingInput(service_id="storstadning", area=75))
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from quote_pricing.config import Settings, get_settings
from quote_pricing.models.schemas import (
    ABExperiment,
    LoyaltySnapshot,
    PricingCatalog,
    PromotionalCode,
)
from quote_pricing.models.state import (
    BaseQuote,
    BookingInput,
    PricingContext,
    PricingResult,
)
from quote_pricing.orchestration.pipeline import PricingPipeline, build_pipeline
from quote_pricing.persistence.promo_repository import PromoCodeRepository
from quote_pricing.pricing.calculator import compute_base_quote
from quote_pricing.pricing.resolver import resolve_base_price
from quote_pricing.services.exposure_service import ExposureLog
from quote_pricing.services.lookups import ExternalLookups
from quote_pricing.services.quote_history import QuoteHistoryLedger

logger = logging.getLogger(__name__)


class UnknownServiceError(KeyError):
    """The booking names a service the catalog does not have."""


class PricingEngine:
    """Per-tenant pricing engine owning its configuration and ledgers."""

    def __init__(
        self,
        catalog: PricingCatalog,
        settings: Settings | None = None,
        lookups: ExternalLookups | None = None,
        promo_repository: PromoCodeRepository | None = None,
        history: QuoteHistoryLedger | None = None,
        exposures: ExposureLog | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog.model_copy(deep=True)
        self.lookups = lookups or ExternalLookups()
        self.promo_codes = promo_repository or PromoCodeRepository(self.catalog.promo_codes)
        self.history = history or QuoteHistoryLedger(self.settings.history_capacity)
        self.exposures = exposures or ExposureLog()
        self.pipeline: PricingPipeline = build_pipeline(
            self.catalog,
            self.promo_codes,
            self.lookups,
            settings=self.settings,
        )
        logger.info(
            f"PricingEngine ready for tenant {self.catalog.tenant_id!r} — features: "
            f"{', '.join(t.value for t in self.pipeline.feature_types) or 'none'}"
        )

    # ── Context + base quote ─────────────────────────────

    def build_context(
        self,
        booking: BookingInput,
        *,
        loyalty: Optional[LoyaltySnapshot] = None,
        preview: bool = False,
        now: Optional[datetime] = None,
    ) -> PricingContext:
        service = self.catalog.get_service(booking.service_id)
        if service is None:
            raise UnknownServiceError(booking.service_id)

        return PricingContext(
            service=service,
            booking=booking,
            base_price=resolve_base_price(service, booking),
            quoted_at=now or datetime.now(timezone.utc),
            loyalty=loyalty,
            preview=preview,
        )

    def base_quote(self, context: PricingContext) -> BaseQuote:
        return compute_base_quote(context, self.catalog)

    # ── Main entry point ─────────────────────────────────

    async def quote(
        self,
        booking: BookingInput,
        *,
        loyalty: Optional[LoyaltySnapshot] = None,
        preview: bool = False,
        now: Optional[datetime] = None,
    ) -> PricingResult:
        """
        Price a booking end to end and append it to the quote history.

        Promo uses reserved by the pipeline are counted, and experiment
        exposures logged, only when the quote completes.  A quote that raises
        releases its reservations and leaves no exposure behind.
        """
        context = self.build_context(booking, loyalty=loyalty, preview=preview, now=now)
        base = self.base_quote(context)

        result = PricingResult()
        try:
            await self.pipeline.run(context, base.total, result)
        except BaseException:  # includes cancellation
            self._release(result)
            raise
        result.base_quote = base

        self._commit(result)
        self.history.record(context, result)
        return result

    # ── Side-effect commit / rollback ────────────────────

    def _commit(self, result: PricingResult) -> None:
        redeemed = [
            r.code for r in result.redemptions
            if self.promo_codes.commit(r.code, r.booking_id)
        ]
        if redeemed:
            result.metadata["redeemed_codes"] = redeemed
        for exposure in result.exposures:
            self.exposures.record(exposure.experiment_id, exposure.variant_id, exposure.subject_id)

    def _release(self, result: PricingResult) -> None:
        for redemption in result.redemptions:
            self.promo_codes.release(redemption.code)
        if result.redemptions:
            logger.info(
                f"[ENGINE] Quote aborted, released {len(result.redemptions)} promo reservation(s)"
            )

    # ── Admin operations ─────────────────────────────────

    def create_promotional_code(self, data: dict[str, Any] | PromotionalCode) -> PromotionalCode:
        promo = data if isinstance(data, PromotionalCode) else PromotionalCode.model_validate(data)
        # New codes always start unused
        promo = promo.model_copy(update={"usage_count": 0, "redeemed_bookings": []})
        return self.promo_codes.save(promo)

    def create_experiment(self, data: dict[str, Any] | ABExperiment) -> ABExperiment:
        experiment = data if isinstance(data, ABExperiment) else ABExperiment.model_validate(data)
        experiments = self.catalog.ab_testing.experiments
        if any(e.id == experiment.id for e in experiments):
            raise ValueError(f"Experiment already exists: {experiment.id}")
        experiments.append(experiment)
        logger.info(f"A/B test experiment created: {experiment.id}")
        return experiment
