"""Domain models for the agent digest mailer."""

from .models import (
    CV_TYPE_CODES,
    MAX_DIGEST_ITEMS,
    VACANCY_TYPE_CODES,
    WORLDWIDE_LOCATION_ID,
    DeliveryRecord,
    DeliveryStatus,
    Digest,
    DigestType,
    Hit,
    SearchResult,
    Subscriber,
)

__all__ = [
    "Subscriber",
    "DigestType",
    "Hit",
    "SearchResult",
    "Digest",
    "DeliveryRecord",
    "DeliveryStatus",
    "WORLDWIDE_LOCATION_ID",
    "VACANCY_TYPE_CODES",
    "CV_TYPE_CODES",
    "MAX_DIGEST_ITEMS",
]
