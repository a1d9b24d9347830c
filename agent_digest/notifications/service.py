"""Notification service for delivering agent digests.

This module provides the NotificationService class that orchestrates one
digest delivery: claiming the delivery key, template rendering, message
assembly, SMTP delivery with retry/backoff and confirming the delivery.
"""

import logging
import time
from typing import Callable, Optional

from agent_digest.config.environment import EnvironmentConfig
from agent_digest.config.models import EmailConfig
from agent_digest.domain.models import Digest
from agent_digest.logging import get_logger
from agent_digest.persistence.exceptions import PersistenceError
from agent_digest.persistence.repositories import DeliveryLog
from agent_digest.utils.timestamps import utc_now

from .models import DeliveryError, DeliveryResult, SMTPDeliveryError
from .payloads import build_digest_context
from .smtp_client import SMTPClient, build_message, validate_recipient
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY = 60.0


class NotificationService:
    """Delivers composed digests by email.

    The delivery key is claimed in the delivery log before anything is handed
    to SMTP. A claim is released only when the digest certainly was not sent;
    once SMTP accepts the message the claim stays, even if confirming it fails.
    """

    def __init__(
        self,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        logger_instance: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            template_renderer: Template renderer instance (creates default if None)
            smtp_client: SMTP client instance (creates default if None)
            logger_instance: Logger instance (uses module logger if None)
            sleep: Delay function used between retries
        """
        self.template_renderer = template_renderer or TemplateRenderer()
        self.smtp_client = smtp_client or SMTPClient()
        self.logger = logger_instance or logger
        self.sleep = sleep

    def send_digest(
        self,
        digest: Digest,
        env_config: EnvironmentConfig,
        email_config: EmailConfig,
        delivery_log: DeliveryLog,
    ) -> DeliveryResult:
        """Send one digest unless its delivery key is already claimed.

        Args:
            digest: Composed digest
            env_config: Environment configuration with SMTP settings
            email_config: Email configuration with sender and retry settings
            delivery_log: Delivery log (each call commits on its own)

        Returns:
            DeliveryResult with status "sent" or "duplicate"

        Raises:
            InvalidRecipientError: If the recipient address is invalid
            NotificationTemplateError: If rendering fails
            SMTPDeliveryError: If every send attempt failed
            PersistenceError: If the delivery key cannot be claimed
        """
        claimed = delivery_log.claim(
            digest.delivery_key, digest.subscriber_id, digest.digest_date, utc_now()
        )
        if not claimed:
            self.logger.info(
                f"Digest for subscriber {digest.subscriber_id} already claimed today",
                extra={"event": "digest.send.duplicate"},
            )
            return DeliveryResult(
                subscriber_id=digest.subscriber_id,
                delivery_key=digest.delivery_key,
                status="duplicate",
            )

        try:
            recipient = validate_recipient(digest.recipient)
            rendered = self.template_renderer.render(build_digest_context(digest))

            message = build_message(
                sender=email_config.sender,
                to=recipient,
                subject=digest.subject,
                text=rendered["text_body"],
                html=rendered["html_body"],
                images=digest.images,
                tags=digest.tags,
            )

            attempts = self._send_with_retry(message, digest, env_config, email_config)
        except DeliveryError:
            self._release_claim(digest, delivery_log)
            raise

        try:
            delivery_log.mark_sent(digest.delivery_key, utc_now())
        except PersistenceError as e:
            # The pending claim still blocks a resend today
            self.logger.warning(
                f"Digest sent to subscriber {digest.subscriber_id} but the delivery "
                f"could not be confirmed: {e}",
                extra={"event": "digest.record.failed", "error_type": type(e).__name__},
            )

        self.logger.info(
            f"Digest sent to subscriber {digest.subscriber_id} "
            f"({digest.count} items, attempts: {attempts})",
            extra={
                "event": "digest.send.success",
                "attempt": attempts,
                "count": digest.count,
                "digest_type": digest.digest_type.value,
            },
        )

        return DeliveryResult(
            subscriber_id=digest.subscriber_id,
            delivery_key=digest.delivery_key,
            status="sent",
            attempts=attempts,
        )

    def _release_claim(self, digest: Digest, delivery_log: DeliveryLog) -> None:
        """Free the delivery key after a send that did not happen."""
        try:
            delivery_log.release(digest.delivery_key)
        except PersistenceError as e:
            self.logger.warning(
                f"Could not release delivery claim for subscriber {digest.subscriber_id}; "
                f"no digest will be sent to them today: {e}",
                extra={"event": "digest.release.failed", "error_type": type(e).__name__},
            )

    def _send_with_retry(self, message, digest: Digest, env_config, email_config) -> int:
        """Send with exponential backoff; returns the attempt that succeeded.

        Raises:
            SMTPDeliveryError: After the last failed attempt
        """
        max_attempts = email_config.max_retries + 1

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = email_config.retry_initial_delay * (
                    email_config.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, MAX_RETRY_DELAY)
                self.logger.warning(
                    f"Retrying delivery for subscriber {digest.subscriber_id} "
                    f"(attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                    extra={"event": "digest.send.retry", "attempt": attempt},
                )
                self.sleep(delay)

            try:
                self.smtp_client.send(
                    message, env_config, email_config.use_tls, timeout=email_config.timeout
                )
                return attempt
            except SMTPDeliveryError as e:
                if attempt < max_attempts:
                    self.logger.warning(
                        f"SMTP delivery failed for subscriber {digest.subscriber_id} "
                        f"(attempt {attempt}/{max_attempts}): {e}",
                        extra={
                            "event": "digest.send.failure",
                            "attempt": attempt,
                            "retry_remaining": True,
                        },
                    )
                    continue

                self.logger.error(
                    f"SMTP delivery failed for subscriber {digest.subscriber_id} "
                    f"after {max_attempts} attempts: {e}",
                    extra={
                        "event": "digest.send.failure",
                        "attempt": attempt,
                        "retry_remaining": False,
                    },
                )
                raise SMTPDeliveryError(str(e), attempts=max_attempts) from e
