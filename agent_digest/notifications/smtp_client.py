"""SMTP client wrapper and message construction for digest emails.

This module provides a thin wrapper around Python's smtplib with support
for TLS/SSL, authentication and connection timeouts, plus the builder that
turns a rendered digest into a MIME message with inline images.
"""

import mimetypes
import smtplib
import ssl
from email.message import EmailMessage
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from email_validator import EmailNotValidError, validate_email

from agent_digest.config.environment import EnvironmentConfig
from agent_digest.logging import get_logger

from .models import InvalidRecipientError, SMTPDeliveryError

logger = get_logger(__name__, component="smtp")

TAG_HEADER = "X-Mailgun-Tag"


class SMTPClient:
    """Wrapper around smtplib for sending email messages.

    Opens one connection per send. Factories are injectable for testing.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        """
        Args:
            smtp_factory: Factory for SMTP instances (defaults to smtplib.SMTP)
            smtp_ssl_factory: Factory for SMTP_SSL instances (defaults to smtplib.SMTP_SSL)
        """
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        timeout: float = 30,
    ) -> None:
        """Send an email message via SMTP.

        Port 465 uses implicit TLS; other ports use STARTTLS when use_tls is set.

        Args:
            message: Fully constructed EmailMessage to send
            env_config: Environment configuration with SMTP settings
            use_tls: Whether to use TLS (STARTTLS or implicit SSL)
            timeout: Connection timeout in seconds

        Raises:
            SMTPDeliveryError: If message delivery fails
        """
        smtp = None
        try:
            if env_config.smtp_port == 465:
                smtp = self.smtp_ssl_factory(
                    env_config.smtp_host,
                    env_config.smtp_port,
                    context=ssl.create_default_context(),
                    timeout=timeout,
                )
            else:
                smtp = self.smtp_factory(env_config.smtp_host, env_config.smtp_port, timeout=timeout)
                if use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if env_config.smtp_user and env_config.smtp_pass:
                smtp.login(env_config.smtp_user, env_config.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message sent to {message['To']}")

        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def validate_recipient(address: str) -> str:
    """Validate and normalize a subscriber address.

    Raises:
        InvalidRecipientError: If the address is not a valid email address
    """
    try:
        return validate_email(address, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidRecipientError(f"Invalid recipient address '{address}': {e}") from e


def build_message(
    sender: str,
    to: str,
    subject: str,
    text: Optional[str],
    html: str,
    images: Optional[Dict[str, str]] = None,
    tags: Iterable[str] = (),
) -> EmailMessage:
    """Build a digest message.

    The HTML body carries each image as an inline related part whose
    Content-ID is the image filename, so templates reference them as
    ``cid:<filename>``. Each tag becomes an X-Mailgun-Tag header. Image files
    that do not exist are skipped with a warning.

    Args:
        sender: From address
        to: Recipient address
        subject: Subject line
        text: Plain text body, or None for an HTML-only message
        html: HTML body
        images: Inline image filename -> file path
        tags: Delivery tags

    Returns:
        EmailMessage ready to send
    """
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = to
    for tag in tags:
        message[TAG_HEADER] = tag

    if text:
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        html_part = message.get_payload()[-1]
    else:
        message.set_content(html, subtype="html")
        html_part = message

    for filename, path in (images or {}).items():
        image_path = Path(path)
        if not image_path.is_file():
            logger.warning(
                f"Inline image not found, skipping: {image_path}",
                extra={"event": "digest.image.missing", "image": filename},
            )
            continue

        mime_type, _ = mimetypes.guess_type(filename)
        maintype, subtype = (mime_type or "image/png").split("/", 1)
        html_part.add_related(
            image_path.read_bytes(),
            maintype=maintype,
            subtype=subtype,
            cid=f"<{filename}>",
            filename=filename,
            disposition="inline",
        )

    return message
