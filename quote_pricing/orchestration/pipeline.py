"""
Adjustment pipeline — the fixed, ordered chain of pricing features.

Order (fixed at construction):
  dynamic pricing → promotional codes → seasonal adjustments → loyalty
  → A/B testing → demand-based pricing → geographic pricing

Features run strictly one after another; each sees the running price left
by the previous one.  Error policy per Settings.continue_on_feature_error:
  False (fail-closed, default) → the failure propagates and aborts the quote
  True  (fail-open)            → the failure is logged and recorded in
                                 result.metadata["errors"]; the price is
                                 left as it was before the feature
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from quote_pricing.config import Settings, get_settings
from quote_pricing.features import (
    BaseFeature,
    FeatureTimeoutError,
    DynamicPricingFeature,
    PromotionalCodeFeature,
    SeasonalAdjustmentFeature,
    LoyaltyProgramFeature,
    ABTestingFeature,
    DemandPricingFeature,
    GeographicPricingFeature,
)
from quote_pricing.models.enums import FeatureType
from quote_pricing.models.schemas import PricingCatalog
from quote_pricing.models.state import (
    AppliedFeature,
    FeatureOutcome,
    PricingContext,
    PricingResult,
)
from quote_pricing.persistence.promo_repository import PromoCodeRepository
from quote_pricing.services.lookups import ExternalLookups

logger = logging.getLogger(__name__)


class PricingPipeline:
    """Ordered registry of adjustment features plus the run loop."""

    def __init__(self, features: Iterable[BaseFeature], settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._features: list[BaseFeature] = []
        for feature in features:
            self.register(feature)

    def register(self, feature: BaseFeature) -> None:
        if any(f.feature_type == feature.feature_type for f in self._features):
            raise ValueError(f"Feature already registered: {feature.feature_type.value}")
        self._features.append(feature)
        logger.debug(f"Feature registered: {feature.name}")

    @property
    def features(self) -> list[BaseFeature]:
        return list(self._features)

    @property
    def feature_types(self) -> list[FeatureType]:
        return [f.feature_type for f in self._features]

    async def _run_feature(
        self, feature: BaseFeature, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        timeout = self.settings.feature_timeout_seconds
        if not timeout or timeout <= 0:
            return await feature.apply(context, result)
        try:
            return await asyncio.wait_for(feature.apply(context, result), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise FeatureTimeoutError(feature.feature_type, timeout) from exc

    async def run(
        self,
        context: PricingContext,
        current_price: float,
        result: Optional[PricingResult] = None,
    ) -> PricingResult:
        """
        Thread `current_price` through every feature.

        Callers that must undo side effects on failure pass their own `result`;
        it still holds the collected redemptions if the run raises.
        """
        if result is None:
            result = PricingResult()
        result.original_price = current_price
        result.adjusted_price = current_price

        for feature in self._features:
            before = result.adjusted_price
            try:
                outcome = await self._run_feature(feature, context, result)
            except Exception as exc:
                if not self.settings.continue_on_feature_error:
                    logger.error(f"[pipeline] {feature.name} failed — aborting quote: {exc}")
                    raise
                logger.exception(f"[pipeline] {feature.name} failed — skipping: {exc}")
                result.metadata.setdefault("errors", []).append({
                    "feature": feature.feature_type.value,
                    "error": str(exc) or type(exc).__name__,
                })
                continue

            if outcome is None:
                continue

            metadata = dict(outcome.metadata)
            new_price = outcome.adjusted_price
            if new_price < 0:
                metadata["clamped"] = True
                metadata["unclamped_price"] = new_price
                new_price = 0

            result.adjusted_price = new_price
            result.redemptions.extend(outcome.redemptions)
            result.exposures.extend(outcome.exposures)
            result.applied_features.append(
                AppliedFeature(
                    feature_type=feature.feature_type,
                    name=feature.name,
                    delta=new_price - before,
                    metadata=metadata,
                )
            )
            result.metadata[feature.feature_type.value] = metadata

        if result.adjusted_price < 0:
            result.metadata["clamped"] = True
            result.adjusted_price = 0
        result.final_price = result.adjusted_price

        logger.info(
            f"[pipeline] {context.service.id}: {result.original_price} → {result.final_price} "
            f"({len(result.applied_features)} adjustments)"
        )
        return result


# ── Default wiring ───────────────────────────────────────

def build_pipeline(
    catalog: PricingCatalog,
    promo_repository: PromoCodeRepository,
    lookups: ExternalLookups,
    settings: Settings | None = None,
) -> PricingPipeline:
    """Instantiate every enabled feature in the fixed pipeline order."""
    candidates: list[BaseFeature] = [
        DynamicPricingFeature(catalog.dynamic_pricing, lookups.market_conditions),
        PromotionalCodeFeature(promo_repository),
        SeasonalAdjustmentFeature(catalog.seasonal),
        LoyaltyProgramFeature(catalog.loyalty_program, lookups.loyalty),
        ABTestingFeature(catalog.ab_testing),
        DemandPricingFeature(catalog.demand, lookups.demand),
        GeographicPricingFeature(catalog.geographic, lookups.cost_of_living),
    ]
    enabled = [f for f in candidates if catalog.features.is_enabled(f.feature_type)]
    skipped = [f.name for f in candidates if f not in enabled]
    if skipped:
        logger.debug(f"Disabled features: {', '.join(skipped)}")
    return PricingPipeline(enabled, settings=settings)
