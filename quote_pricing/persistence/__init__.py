"""Persistence — PromoCodeRepository, PricingCatalogStore."""

from quote_pricing.persistence.promo_repository import PromoCodeRepository
from quote_pricing.persistence.catalog_store import PricingCatalogStore, default_catalog

__all__ = ["PromoCodeRepository", "PricingCatalogStore", "default_catalog"]
