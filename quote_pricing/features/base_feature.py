"""
Base feature class that every pricing adjustment inherits.

Design:
  - `apply()` is called by the pipeline orchestrator.
  - `_real_apply()` is the single abstract method; override it in each feature.
  - Returning None means "nothing to adjust"; the orchestrator records
    nothing for that feature.
  - Exceptions propagate; the orchestrator's error policy decides whether
    they abort the quote.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from quote_pricing.models.enums import FeatureType
from quote_pricing.models.state import FeatureOutcome, PricingContext, PricingResult
from quote_pricing.pricing.calculator import round_currency

logger = logging.getLogger(__name__)


class FeatureTimeoutError(TimeoutError):
    """A feature did not finish within the configured timeout."""

    def __init__(self, feature_type: FeatureType, timeout: float):
        self.feature_type = feature_type
        self.timeout = timeout
        super().__init__(f"[{feature_type.value}] timed out after {timeout:.2f}s")


class BaseFeature(ABC):
    """Abstract base for all adjustment features."""

    feature_type: FeatureType  # set in each subclass
    name: str = ""

    # ── Public entry point (called by the orchestrator) ──

    async def apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        t0 = time.perf_counter()
        before = result.adjusted_price
        logger.debug(f"▶ [{self.feature_type.value}] STARTING at price {before}")

        try:
            outcome = await self._real_apply(context, result)
        except Exception as exc:
            elapsed = time.perf_counter() - t0
            logger.warning(
                f"✘ [{self.feature_type.value}] FAILED after {elapsed:.3f}s: {exc}"
            )
            raise

        elapsed = time.perf_counter() - t0
        if outcome is None:
            logger.debug(f"✔ [{self.feature_type.value}] no adjustment ({elapsed:.3f}s)")
        else:
            logger.info(
                f"✔ [{self.feature_type.value}] {before} → {outcome.adjusted_price} "
                f"in {elapsed:.3f}s"
            )
        return outcome

    # ── Subclass hook ────────────────────────────────────

    @abstractmethod
    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        ...

    # ── Helpers ──────────────────────────────────────────

    @staticmethod
    def unchanged(result: PricingResult, **metadata: Any) -> FeatureOutcome:
        """Outcome that leaves the running price as it is."""
        return FeatureOutcome(adjusted_price=result.adjusted_price, metadata=metadata)

    @staticmethod
    def scaled(result: PricingResult, multiplier: float, metadata: dict[str, Any]) -> FeatureOutcome:
        """Multiply the running price, rounded to whole currency units."""
        metadata = dict(metadata)
        metadata["total_multiplier"] = multiplier
        metadata["price_before"] = result.adjusted_price
        return FeatureOutcome(
            adjusted_price=round_currency(result.adjusted_price * multiplier),
            metadata=metadata,
        )

    @staticmethod
    def discounted(result: PricingResult, discount: float, metadata: dict[str, Any]) -> FeatureOutcome:
        """Subtract a discount from the running price, never going below zero."""
        metadata = dict(metadata)
        price = result.adjusted_price
        new_price = round_currency(price - discount)
        if new_price < 0:
            metadata["clamped"] = True
            new_price = 0
        return FeatureOutcome(adjusted_price=new_price, metadata=metadata)
