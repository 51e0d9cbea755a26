"""
Promo Code Repository — owner of promotional codes and their usage counters.
Uses an in-memory dict; codes are keyed upper-case so lookups are
case-insensitive.

Redemption is the one piece of shared mutable state touched during a quote,
so every increment runs under a per-code lock as a compare-and-increment:
the usage limit is re-checked inside the lock before the counter moves.
In-flight quotes hold reservations that count against the limit until the
engine commits or releases them.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from quote_pricing.models.schemas import PromotionalCode

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class PromoCodeRepository:
    """
    Save/load PromotionalCodes and serialize their redemptions.
    Redemption is idempotent per booking id: a booking that already redeemed
    a code is not counted twice when the quote is retried.
    """

    def __init__(self, codes: Iterable[PromotionalCode] = ()):
        self._codes: dict[str, PromotionalCode] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._reserved: dict[str, int] = {}
        self._registry_lock = threading.Lock()
        for promo in codes:
            self.save(promo)

    def _lock_for(self, code: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(code)
            if lock is None:
                lock = threading.Lock()
                self._locks[code] = lock
            return lock

    def save(self, promo: PromotionalCode) -> PromotionalCode:
        """Insert or replace a code. Returns the stored copy."""
        stored = promo.model_copy(deep=True)
        with self._lock_for(stored.code):
            self._codes[stored.code] = stored
        logger.info(f"Promotional code saved: {stored.code}")
        return stored.model_copy(deep=True)

    def get(self, code: str) -> Optional[PromotionalCode]:
        """Return a snapshot of the code, or None if it does not exist."""
        key = normalize_code(code)
        if not key:
            return None
        with self._lock_for(key):
            promo = self._codes.get(key)
            return promo.model_copy(deep=True) if promo else None

    # ── Two-phase redemption ─────────────────────────────
    #   reserve() holds one use while the quote is priced,
    #   commit() turns it into a counted use, release() gives it back.

    def reserve(self, code: str, booking_id: str | None = None) -> bool:
        """
        Hold one use of `code` for an in-flight quote.
        Returns False if the code is unknown or used + reserved has reached
        the usage limit.  A booking that already redeemed always gets a hold.
        """
        key = normalize_code(code)
        with self._lock_for(key):
            promo = self._codes.get(key)
            if promo is None:
                return False

            already_redeemed = bool(booking_id) and booking_id in promo.redeemed_bookings
            held = self._reserved.get(key, 0)
            if (
                not already_redeemed
                and promo.usage_limit is not None
                and promo.usage_count + held >= promo.usage_limit
            ):
                logger.info(f"[PROMO] {key} usage limit {promo.usage_limit} reached")
                return False

            self._reserved[key] = held + 1
            logger.debug(f"[PROMO] {key} reserved ({held + 1} held)")
            return True

    def commit(self, code: str, booking_id: str | None = None) -> bool:
        """Count a reserved use.  Idempotent per booking id."""
        key = normalize_code(code)
        with self._lock_for(key):
            promo = self._codes.get(key)
            if promo is None:
                return False
            self._reserved[key] = max(0, self._reserved.get(key, 0) - 1)

            if booking_id and booking_id in promo.redeemed_bookings:
                logger.debug(f"[PROMO] {key} already redeemed for booking {booking_id}")
                return True

            promo.usage_count += 1
            if booking_id:
                promo.redeemed_bookings.append(booking_id)
            logger.info(
                f"[PROMO] {key} redeemed ({promo.usage_count}"
                f"/{promo.usage_limit if promo.usage_limit is not None else '∞'})"
            )
            return True

    def release(self, code: str) -> None:
        """Drop a reservation without counting it (the quote was aborted)."""
        key = normalize_code(code)
        with self._lock_for(key):
            if self._reserved.get(key, 0) > 0:
                self._reserved[key] -= 1
                logger.debug(f"[PROMO] {key} reservation released")

    def redeem(self, code: str, booking_id: str | None = None) -> bool:
        """
        Count one use of `code` immediately.
        Returns False if the code is unknown or its usage limit is exhausted.
        """
        if not self.reserve(code, booking_id):
            return False
        return self.commit(code, booking_id)

    def reserved_count(self, code: str) -> int:
        key = normalize_code(code)
        with self._lock_for(key):
            return self._reserved.get(key, 0)

    def usage_count(self, code: str) -> int:
        promo = self.get(code)
        return promo.usage_count if promo else 0

    def list_codes(self) -> list[str]:
        """List all stored codes."""
        with self._registry_lock:
            return sorted(self._codes.keys())

    def __contains__(self, code: str) -> bool:
        return normalize_code(code) in self._codes
