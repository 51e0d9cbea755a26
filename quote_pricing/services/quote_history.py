"""
Quote History Ledger — bounded, append-only record of computed quotes.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from quote_pricing.models.state import PricingContext, PricingResult, QuoteHistoryRecord

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000


class QuoteHistoryLedger:
    """
    Ring buffer of QuoteHistoryRecords for audit/debugging.
    Oldest entries are evicted once `capacity` is reached.
    Safe for concurrent appends from several quote flows.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("Ledger capacity must be positive")
        self.capacity = capacity
        self._records: deque[QuoteHistoryRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, context: PricingContext, result: PricingResult) -> QuoteHistoryRecord:
        """Snapshot a finished quote and append it."""
        entry = QuoteHistoryRecord(
            original_price=result.original_price,
            final_price=result.final_price,
            applied_features=[f.model_copy(deep=True) for f in result.applied_features],
            service_id=context.service.id,
            area=context.booking.area,
            zip_code=context.booking.zip_code,
        )
        self.append(entry)
        return entry

    def append(self, entry: QuoteHistoryRecord) -> None:
        with self._lock:
            self._records.append(entry)
        logger.debug(
            f"[HISTORY] {entry.service_id} → {entry.original_price} ⇒ {entry.final_price}"
        )

    def records(self) -> list[QuoteHistoryRecord]:
        """Return all retained records, oldest first."""
        with self._lock:
            return list(self._records)

    def recent(self, limit: int = 10) -> list[QuoteHistoryRecord]:
        """Return up to `limit` newest records, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self._records))[:limit]

    def for_service(self, service_id: str) -> list[QuoteHistoryRecord]:
        return [r for r in self.records() if r.service_id == service_id]

    def latest(self) -> Optional[QuoteHistoryRecord]:
        with self._lock:
            return self._records[-1] if self._records else None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
