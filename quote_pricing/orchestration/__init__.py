"""Orchestration — the ordered adjustment pipeline."""

from quote_pricing.orchestration.pipeline import PricingPipeline, build_pipeline

__all__ = ["PricingPipeline", "build_pipeline"]
