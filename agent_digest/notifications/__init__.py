"""Digest delivery by email.

- NotificationService: dedupe, render, send with retry, record delivery
- TemplateRenderer: Jinja2 HTML and plain text bodies
- SMTPClient / build_message: transport and MIME assembly with inline images
"""

from .models import (
    DeliveryError,
    DeliveryResult,
    InvalidRecipientError,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .payloads import build_digest_context
from .service import NotificationService
from .smtp_client import SMTPClient, build_message, validate_recipient
from .templates import TemplateRenderer

__all__ = [
    "NotificationService",
    "DeliveryResult",
    "DeliveryError",
    "InvalidRecipientError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "TemplateRenderer",
    "SMTPClient",
    "build_digest_context",
    "build_message",
    "validate_recipient",
]
