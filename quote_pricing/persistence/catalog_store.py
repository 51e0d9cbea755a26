"""
Pricing Catalog Store — loads/saves a tenant's PricingCatalog as JSON.

Tenant-level setting: the catalog is configured by an admin and cached.
Falls back to the built-in default catalog if no file is configured.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from quote_pricing.config import get_settings
from quote_pricing.models.enums import PricingModel
from quote_pricing.models.schemas import (
    AddOn,
    FrequencyMultiplier,
    PricingCatalog,
    PricingTier,
    Service,
    WindowBand,
)

logger = logging.getLogger(__name__)


# ── Built-in defaults ────────────────────────────────────

def default_catalog() -> PricingCatalog:
    """Cleaning-company catalog used when no tenant file is configured."""
    window_bands = [
        WindowBand(band_index=1, unit_price=90),
        WindowBand(band_index=2, unit_price=90),
        WindowBand(band_index=3, unit_price=120),
        WindowBand(band_index=4, unit_price=120),
        WindowBand(band_index=5, unit_price=150),
        WindowBand(band_index=6, unit_price=150),
        WindowBand(band_index=7, unit_price=200),
        WindowBand(band_index=8, unit_price=250),
    ]
    return PricingCatalog(
        services=[
            Service(
                id="storstadning",
                name="Storstädning",
                pricing_model=PricingModel.TIERED_PER_AREA,
                # Adjacent tiers share a bound; the first match wins, so 50 stays in [0, 50]
                tiers=[
                    PricingTier(min_value=0, max_value=50, flat_price=1905),
                    PricingTier(min_value=50, max_value=60, flat_price=2335),
                    PricingTier(min_value=60, max_value=80, flat_price=3195),
                    PricingTier(min_value=80, max_value=None, flat_price=3625),
                ],
                window_bands=window_bands,
                add_ons=[
                    AddOn(key="oven", flat_price=500, label="Ugnsrengöring"),
                    AddOn(key="fridge", flat_price=500, label="Kylskåpsrengöring"),
                ],
                rut_eligible=True,
            ),
            Service(
                id="flyttstadning",
                name="Flyttstädning",
                pricing_model=PricingModel.TIERED_PER_AREA,
                tiers=[
                    PricingTier(min_value=0, max_value=50, flat_price=2545),
                    PricingTier(min_value=50, max_value=60, flat_price=2695),
                    PricingTier(min_value=60, max_value=70, flat_price=3045),
                    PricingTier(min_value=70, max_value=None, flat_price=3195),
                ],
                add_ons=[
                    AddOn(key="balcony_window", flat_price=500, label="Balkongfönsterputsning"),
                    AddOn(key="balcony_cleaning", flat_price=500, label="Balkongstädning"),
                ],
                rut_eligible=True,
            ),
            Service(
                id="fonsterputsning",
                name="Fönsterputsning",
                pricing_model=PricingModel.PER_WINDOW_BAND,
                window_bands=window_bands,
                add_ons=[AddOn(key="curtain_dry_cleaning", flat_price=500, label="Kemtvätt av gardiner")],
                rut_eligible=True,
            ),
        ],
        frequency_multipliers=[
            FrequencyMultiplier(key="weekly", multiplier=1.0),
            FrequencyMultiplier(key="biweekly", multiplier=1.15),
            FrequencyMultiplier(key="monthly", multiplier=1.40),
        ],
        tax_rate=0.25,
    )


# ── Store class ──────────────────────────────────────────

class PricingCatalogStore:
    """
    Loads the catalog from a JSON file. Falls back to defaults when no path
    is configured. Cached after first load for the lifetime of the process.
    """

    def __init__(self, path: str | None = None):
        self.settings = get_settings()
        self.path = path if path is not None else self.settings.catalog_path
        self._cache: PricingCatalog | None = None

    def get_catalog(self) -> PricingCatalog:
        if self._cache is not None:
            return self._cache

        if not self.path:
            logger.info("No catalog path configured — using built-in default catalog")
            self._cache = default_catalog()
            return self._cache

        file_path = Path(self.path)
        if not file_path.exists():
            raise FileNotFoundError(f"Pricing catalog not found: {self.path}")

        try:
            catalog = PricingCatalog.model_validate_json(file_path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            logger.error(f"Invalid pricing catalog {self.path}: {exc.error_count()} errors")
            raise

        logger.info(
            f"Loaded catalog for tenant {catalog.tenant_id!r}: "
            f"{len(catalog.services)} services, {len(catalog.promo_codes)} promo codes, "
            f"{len(catalog.ab_testing.experiments)} experiments"
        )
        self._cache = catalog
        return catalog

    def update_catalog(self, data: dict[str, Any]) -> PricingCatalog:
        """Admin: validate and replace the catalog, writing it back if file-backed."""
        catalog = PricingCatalog.model_validate(data)
        if self.path:
            Path(self.path).write_text(catalog.model_dump_json(indent=2), encoding="utf-8")
            logger.info(f"Wrote catalog to {self.path}")
        self._cache = catalog
        return catalog

    def invalidate(self) -> None:
        self._cache = None
