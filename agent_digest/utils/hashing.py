"""Hashing utilities for unsubscribe codes and delivery dedupe keys.

This module provides deterministic hashing functions for:
- unsubscribe code: SHA-1 of the subscriber id, compatible with links
  already issued to subscribers
- delivery key: one digest per subscriber per calendar day
"""

import hashlib
from datetime import date


def compute_unsubscribe_code(subscriber_id: int) -> str:
    """Compute the unsubscribe code embedded in digest links.

    Args:
        subscriber_id: Subscriber (agent) id

    Returns:
        Hexadecimal SHA-1 digest of the decimal id (40 characters)

    Example:
        >>> compute_unsubscribe_code(1)
        '356a192b7913b04c54574d18c28d46e6395428ab'
    """
    return hashlib.sha1(str(subscriber_id).encode("utf-8")).hexdigest()


def compute_delivery_key(subscriber_id: int, digest_date: date) -> str:
    """Compute the dedupe key for one subscriber's digest on one day.

    The key is a SHA256 hash of: digest_date:subscriber_id

    Args:
        subscriber_id: Subscriber (agent) id
        digest_date: Calendar date the digest covers

    Returns:
        Hexadecimal string representation of SHA256 hash (64 characters)
    """
    composite_key = f"{digest_date.isoformat()}:{subscriber_id}"
    return hash_string(composite_key)


def hash_string(value: str) -> str:
    """Compute SHA256 hash of a string value.

    Args:
        value: String to hash

    Returns:
        Hexadecimal string representation of SHA256 hash (64 characters)
    """
    hash_obj = hashlib.sha256(value.encode("utf-8"))
    return hash_obj.hexdigest()
