"""
Quote Pricing Engine — Main Entry Point

Price a booking from the command line:
    python -m quote_pricing booking.json [catalog.json]

Or import and run programmatically:
    from quote_pricing.main import run
    result = run("path/to/booking.json")
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from quote_pricing.config import get_settings
from quote_pricing.engine import PricingEngine, UnknownServiceError
from quote_pricing.models.state import BookingInput, PricingResult
from quote_pricing.persistence.catalog_store import PricingCatalogStore
from quote_pricing.utils.logger import setup_logging

USAGE = "usage: python -m quote_pricing booking.json [catalog.json]"


def run(booking_path: str, catalog_path: str | None = None) -> dict:
    """Price the booking in `booking_path` and return the result as a dict."""
    settings = get_settings()
    setup_logging(settings.log_level, debug=settings.debug)
    logger = logging.getLogger(__name__)

    path = Path(booking_path)
    if not path.exists():
        raise FileNotFoundError(f"Booking file not found: {booking_path}")

    booking = BookingInput.model_validate(json.loads(path.read_text(encoding="utf-8")))
    catalog = PricingCatalogStore(catalog_path).get_catalog()

    logger.info("=" * 60)
    logger.info(f"  {settings.app_name.upper()}")
    logger.info(f"  Tenant: {catalog.tenant_id} | Started: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    engine = PricingEngine(catalog, settings=settings)
    result = asyncio.run(engine.quote(booking, preview=True))

    _print_summary(result, catalog.currency)
    return result.model_dump(mode="json")


def cli(argv: list[str]) -> int:
    """Command-line wrapper around run(); returns the process exit code."""
    if not argv:
        print(USAGE, file=sys.stderr)
        return 2

    logger = logging.getLogger(__name__)
    try:
        run(argv[0], argv[1] if len(argv) > 1 else None)
    except UnknownServiceError as exc:
        logger.error(f"[CLI] Unknown service {exc.args[0]!r}")
        return 1
    except FileNotFoundError as exc:
        logger.error(f"[CLI] {exc}")
        return 1
    except (ValidationError, json.JSONDecodeError) as exc:
        logger.error(f"[CLI] Invalid booking file {argv[0]}: {exc}")
        return 1
    return 0


def _print_summary(result: PricingResult, currency: str) -> None:
    """Print a human-readable summary of the quote."""
    logger = logging.getLogger(__name__)

    logger.info("")
    logger.info("-" * 60)
    logger.info("  QUOTE SUMMARY")
    logger.info("-" * 60)
    base = result.base_quote
    if base is not None:
        logger.info(f"  Base price:     {base.base_price:,.2f} {currency}")
        logger.info(f"  Frequency:      ×{base.frequency_multiplier}")
        logger.info(f"  Add-ons:        {base.add_ons_total + base.window_add_on_total:,.2f} {currency}")
        logger.info(f"  Tax:            {base.tax_amount:,.2f} {currency}")
        if base.rut_deduction:
            logger.info(f"  RUT deduction:  -{base.rut_deduction:,.2f} {currency}")
    logger.info(f"  Original price: {result.original_price:,.0f} {currency}")

    for applied in result.applied_features:
        error = applied.metadata.get("error")
        suffix = f"  ({error})" if error else ""
        logger.info(f"    {applied.name:<22} {applied.delta:+,.0f}{suffix}")

    for failure in result.metadata.get("errors", []):
        logger.info(f"    {failure['feature']:<22} skipped: {failure['error']}")

    logger.info(f"  Final price:    {result.final_price:,.0f} {currency}")
    logger.info("-" * 60)


if __name__ == "__main__":
    sys.exit(cli(sys.argv[1:]))
