"""Utility functions for hashing and time handling."""

from .hashing import compute_delivery_key, compute_unsubscribe_code, hash_string
from .timestamps import (
    ensure_utc,
    format_digest_date,
    format_timestamp,
    utc_now,
)

__all__ = [
    # Hashing
    "compute_unsubscribe_code",
    "compute_delivery_key",
    "hash_string",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "format_digest_date",
    "format_timestamp",
]
