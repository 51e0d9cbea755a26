"""
A/B experiment pricing.

Each running experiment deterministically assigns the subject (customer id,
falling back to session id) to a variant.  Non-neutral variant multipliers
compound in experiment registration order.
"""

from __future__ import annotations

from typing import Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import FeatureType
from quote_pricing.models.schemas import ABExperiment, ABTestingConfig, ExperimentVariant
from quote_pricing.models.state import (
    ExperimentExposure,
    FeatureOutcome,
    PricingContext,
    PricingResult,
)
from quote_pricing.pricing.calculator import round_currency
from quote_pricing.utils.hashing import bucket_index, weighted_choice


def assign_variant(subject_id: str, experiment: ABExperiment) -> Optional[ExperimentVariant]:
    """Pure, deterministic variant assignment for (subject, experiment)."""
    variants = experiment.variants
    if not variants:
        return None

    if experiment.traffic_allocation:
        variant_id = weighted_choice(
            subject_id,
            experiment.id,
            [v.id for v in variants],
            experiment.traffic_allocation,
        )
        return next((v for v in variants if v.id == variant_id), None)

    return variants[bucket_index(subject_id, experiment.id, len(variants))]


class ABTestingFeature(BaseFeature):
    feature_type = FeatureType.AB_TESTING
    name = "A/B Testing"

    def __init__(self, config: ABTestingConfig):
        self.config = config

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        subject_id = context.subject_id
        if not subject_id:
            return None

        running = [e for e in self.config.experiments if e.is_running_at(context.quoted_at)]
        if not running:
            return None

        price = result.adjusted_price
        exposures: list[ExperimentExposure] = []

        for experiment in running:
            variant = assign_variant(subject_id, experiment)
            if variant is None or variant.price_multiplier == 1:
                continue
            price = round_currency(price * variant.price_multiplier)
            exposures.append(
                ExperimentExposure(
                    experiment_id=experiment.id,
                    variant_id=variant.id,
                    subject_id=subject_id,
                    price_multiplier=variant.price_multiplier,
                )
            )

        if not exposures:
            return None
        # Exposures are logged by the engine once the quote succeeds
        return FeatureOutcome(
            adjusted_price=price,
            metadata={"experiments": [e.model_dump() for e in exposures]},
            exposures=exposures,
        )
