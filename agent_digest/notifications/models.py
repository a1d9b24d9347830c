"""Result types and exceptions for digest delivery."""

from dataclasses import dataclass
from typing import Optional


class DeliveryError(Exception):
    """Base exception for a digest that could not be delivered.

    Attributes:
        attempts: Send attempts made before giving up
    """

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class NotificationTemplateError(DeliveryError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(DeliveryError):
    """Raised when SMTP delivery fails (after all retry attempts, at service level)."""

    pass


class InvalidRecipientError(DeliveryError):
    """Raised when the subscriber's address is not a valid email address."""

    pass


@dataclass
class DeliveryResult:
    """Outcome of handing one digest to the mail transport.

    Attributes:
        subscriber_id: Subscriber the digest was for
        delivery_key: Per-day, per-subscriber dedupe key
        status: "sent" or "duplicate"
        attempts: Number of send attempts made
    """

    subscriber_id: int
    delivery_key: str
    status: str  # "sent", "duplicate"
    attempts: int = 0
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "sent"
