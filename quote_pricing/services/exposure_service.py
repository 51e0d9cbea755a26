"""
Exposure Service — records which experiment variant each subject was priced with.
In-memory; a real deployment would forward entries to the analytics store.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


class ExposureLog:
    """Append-only list of experiment exposures."""

    def __init__(self):
        self._entries: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def record(self, experiment_id: str, variant_id: str, subject_id: str) -> dict[str, Any]:
        """Record an exposure and return it."""
        entry = {
            "experiment_id": experiment_id,
            "variant_id": variant_id,
            "subject_id": subject_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        with self._lock:
            self._entries.append(entry)
        logger.info(f"[EXPOSURE] {experiment_id} → {variant_id} for {subject_id}")
        return entry

    def for_experiment(self, experiment_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return [e for e in self._entries if e["experiment_id"] == experiment_id]

    def get_all(self) -> list[dict[str, Any]]:
        """Return all exposures (for debugging)."""
        with self._lock:
            return list(self._entries)
