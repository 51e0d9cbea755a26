"""
Per-quote state — the objects that flow through the pricing pipeline.

Design rules:
  1. PricingContext is an immutable snapshot built once per quote request.
  2. PricingResult is the running result; only the orchestrator writes to it.
     Features read it and return a FeatureOutcome.
  3. QuoteHistoryRecord is what the ledger keeps after a quote succeeds.
  4. Features never write shared state.  Redemptions and exposures ride on
     the outcome and are committed by the engine after the pipeline returns.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import FeatureType
from .schemas import LoyaltySnapshot, Service


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_number(value: Any) -> Optional[float]:
    """Best-effort numeric coercion; anything unusable becomes None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


# ── Booking request ──────────────────────────────────────


class BookingInput(BaseModel):
    """Raw booking selections as submitted by the booking form."""
    model_config = ConfigDict(frozen=True)

    service_id: str
    area: Optional[float] = None
    rooms: Optional[float] = None
    room_breakdown: dict[str, int] = {}  # room type -> count
    frequency: Optional[str] = None
    add_ons: list[str] = []
    window_quantities: dict[int, int] = {}
    zip_code: Optional[str] = None
    date: Optional[datetime] = None
    customer_id: Optional[str] = None
    session_id: Optional[str] = None
    booking_id: Optional[str] = None
    promo_code: Optional[str] = None
    is_first_time_customer: bool = False
    redeem_points: bool = False
    use_rut: bool = False

    @field_validator("area", "rooms", mode="before")
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return _to_number(value)

    @field_validator("window_quantities", mode="before")
    @classmethod
    def _lenient_quantities(cls, value: Any) -> dict[int, int]:
        if not isinstance(value, dict):
            return {}
        quantities: dict[int, int] = {}
        for band, qty in value.items():
            band_num = _to_number(band)
            qty_num = _to_number(qty)
            if band_num is None or qty_num is None:
                continue
            quantities[int(band_num)] = int(qty_num)
        return quantities

    @field_validator("room_breakdown", mode="before")
    @classmethod
    def _lenient_rooms(cls, value: Any) -> dict[str, int]:
        if not isinstance(value, dict):
            return {}
        counts: dict[str, int] = {}
        for room_type, count in value.items():
            number = _to_number(count)
            if number is not None:
                counts[str(room_type)] = int(number)
        return counts


class PricingContext(BaseModel):
    """Immutable snapshot of one quote request."""
    model_config = ConfigDict(frozen=True)

    service: Service
    booking: BookingInput
    base_price: float = 0.0
    quoted_at: datetime = Field(default_factory=_utcnow)
    loyalty: Optional[LoyaltySnapshot] = None
    preview: bool = False  # admin preview: never consumes promo usage

    @property
    def booking_date(self) -> datetime:
        """Date/time of the booked service, defaulting to the quote time."""
        return self.booking.date or self.quoted_at

    @property
    def subject_id(self) -> Optional[str]:
        return self.booking.customer_id or self.booking.session_id


# ── Base quote breakdown ─────────────────────────────────


class BaseQuote(BaseModel):
    base_price: float = 0.0
    frequency_multiplier: float = 1.0
    frequency_adjusted_base: float = 0.0
    add_ons_total: float = 0.0
    window_add_on_total: float = 0.0
    subtotal: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    rut_deduction: float = 0.0
    unrounded_total: float = 0.0
    total: int = 0


# ── Pipeline output ──────────────────────────────────────


class PromoRedemption(BaseModel):
    """A promo use reserved during the quote, committed once the quote succeeds."""
    code: str
    booking_id: Optional[str] = None


class ExperimentExposure(BaseModel):
    experiment_id: str
    variant_id: str
    subject_id: str
    price_multiplier: float = 1.0


class FeatureOutcome(BaseModel):
    """
    What a feature returns: the new running price plus its metadata.
    Side effects (promo redemptions, experiment exposures) are returned here
    rather than performed, so an aborted quote leaves no trace.
    """
    adjusted_price: float
    metadata: dict[str, Any] = {}
    redemptions: list[PromoRedemption] = []
    exposures: list[ExperimentExposure] = []


class AppliedFeature(BaseModel):
    feature_type: FeatureType
    name: str
    delta: float = 0.0  # new price minus the price before this feature
    metadata: dict[str, Any] = {}


class PricingResult(BaseModel):
    original_price: float = 0.0
    adjusted_price: float = 0.0  # running price while the pipeline runs
    final_price: float = 0.0
    applied_features: list[AppliedFeature] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    base_quote: Optional[BaseQuote] = None
    # Collected from applied features; the engine commits or releases them
    redemptions: list[PromoRedemption] = Field(default_factory=list)
    exposures: list[ExperimentExposure] = Field(default_factory=list)

    @property
    def total_adjustment(self) -> float:
        return self.final_price - self.original_price


class QuoteHistoryRecord(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    original_price: float = 0.0
    final_price: float = 0.0
    applied_features: list[AppliedFeature] = []
    service_id: str = ""
    area: Optional[float] = None
    zip_code: Optional[str] = None
