"""Services — QuoteHistoryLedger, ExposureLog, ExternalLookups."""

from quote_pricing.services.quote_history import QuoteHistoryLedger
from quote_pricing.services.exposure_service import ExposureLog
from quote_pricing.services.lookups import ExternalLookups

__all__ = ["QuoteHistoryLedger", "ExposureLog", "ExternalLookups"]
