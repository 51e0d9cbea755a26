"""
Engine configuration using Pydantic Settings.
Operational values (error policy, timeouts, ledger size) are centralized here.
Tenant pricing data (services, promo codes, experiments) lives in the
PricingCatalog, not in settings.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Quote Pricing Engine"
    debug: bool = False

    # ── Pipeline error policy ────────────────────────────
    # False = fail-closed: a failing feature aborts the quote.
    # True  = fail-open: the feature is logged and skipped.
    continue_on_feature_error: bool = False
    feature_timeout_seconds: float = 5.0

    # ── Quote history ────────────────────────────────────
    history_capacity: int = 1000

    # ── Catalog ──────────────────────────────────────────
    catalog_path: str = ""  # JSON PricingCatalog; empty = built-in defaults

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached engine settings (singleton)."""
    return Settings()
