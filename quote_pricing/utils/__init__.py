from .logger import setup_logging
from .hashing import sha256_hash, stable_hash, bucket_index, weighted_choice

__all__ = ["setup_logging", "sha256_hash", "stable_hash", "bucket_index", "weighted_choice"]
