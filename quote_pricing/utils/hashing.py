"""
Hashing utilities for deterministic experiment bucketing.

Assignment depends only on SHA-256 of the inputs, never on Python's
per-process string hash, so the same (subject, experiment) pair lands in the
same bucket on every host and in every language that implements the scheme:

    stable_hash(a, b, ...) = int(sha256("a:b:...").hexdigest()[:15], 16)
"""

from __future__ import annotations

import hashlib
from typing import Optional, Sequence

ALLOCATION_BUCKETS = 10_000


def sha256_hash(content: str | bytes) -> str:
    """Return the SHA-256 hex digest of the given content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def stable_hash(*parts: str) -> int:
    """Non-negative 60-bit integer derived from the ':'-joined parts."""
    digest = sha256_hash(":".join(str(p) for p in parts))
    return int(digest[:15], 16)


def bucket_index(subject_id: str, experiment_id: str, bucket_count: int) -> int:
    """Map a subject into [0, bucket_count) for the given experiment."""
    if bucket_count <= 0:
        raise ValueError("bucket_count must be positive")
    return stable_hash(subject_id, experiment_id) % bucket_count


def weighted_choice(
    subject_id: str,
    experiment_id: str,
    keys: Sequence[str],
    weights: dict[str, float],
) -> Optional[str]:
    """
    Pick one of `keys` using cumulative normalized weights.

    Keys missing from `weights` (or with weight <= 0) receive no traffic.
    Returns None when no key carries positive weight.
    """
    positive = [(k, float(weights.get(k, 0) or 0)) for k in keys]
    positive = [(k, w) for k, w in positive if w > 0]
    total = sum(w for _, w in positive)
    if total <= 0:
        return None

    point = bucket_index(subject_id, experiment_id, ALLOCATION_BUCKETS)
    cumulative = 0.0
    for key, weight in positive:
        cumulative += weight / total * ALLOCATION_BUCKETS
        if point < cumulative:
            return key
    # Floating-point shortfall on the final edge
    return positive[-1][0]
