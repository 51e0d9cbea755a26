"""Quote pricing engine for multi-tenant booking/quote flows."""

from quote_pricing.engine import PricingEngine, UnknownServiceError
from quote_pricing.models.state import BookingInput, PricingContext, PricingResult
from quote_pricing.models.schemas import PricingCatalog

__all__ = [
    "PricingEngine",
    "UnknownServiceError",
    "BookingInput",
    "PricingContext",
    "PricingResult",
    "PricingCatalog",
]
