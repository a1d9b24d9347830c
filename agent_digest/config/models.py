"""Configuration schema models using Pydantic."""

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

PRODUCTION_ENVIRONMENT = "production"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class DomainConfig(BaseModel):
    """Site domain the digests are sent for."""

    id: int = Field(..., ge=0, description="Domain id stored on indexed listings")
    name: str = Field(..., min_length=1, description="Public host name used in links")
    language: str = Field(..., min_length=2, description="Language code of the digest texts")

    @field_validator("name", "language")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from string fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("language")
    @classmethod
    def lowercase_language(cls, v: str) -> str:
        """Normalize language code to lowercase."""
        return v.lower()


class SearchConfig(BaseModel):
    """Search service settings."""

    url: str = Field("http://localhost:9200", min_length=1, description="Search service base URL")
    index_prefix: str = Field("offers", min_length=1, description="Listing index name prefix")
    timeout: int = Field(10, ge=1, le=300, description="Request timeout (seconds)")
    max_retries: int = Field(2, ge=0, le=10, description="Retry attempts for failed searches")
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        1.0, ge=0.0, le=60.0, description="Initial retry delay in seconds"
    )
    user_agent: str = Field("AgentDigest/1.0", min_length=1, description="User-Agent header")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an http(s) URL without trailing slash."""
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("Search URL must start with http:// or https://")
        return stripped


class EmailConfig(BaseModel):
    """Email delivery settings."""

    sender: str = Field(..., min_length=3, description="From address, e.g. 'Site <info@example.com>'")
    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    timeout: int = Field(30, ge=1, le=300, description="SMTP connection timeout (seconds)")
    max_retries: int = Field(
        3, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: int = Field(
        5, ge=0, le=60, description="Initial retry delay in seconds"
    )


class DispatchConfig(BaseModel):
    """Worker pool settings for processing subscribers."""

    concurrency: int = Field(4, ge=1, le=64, description="Subscribers processed in parallel")


class ScheduleConfig(BaseModel):
    """Daily schedule for daemon mode."""

    send_time: str = Field("07:00", description="Daily send time (HH:MM, UTC)")

    @field_validator("send_time")
    @classmethod
    def validate_send_time(cls, v: str) -> str:
        """Validate HH:MM format."""
        stripped = v.strip()
        match = re.fullmatch(r"(\d{1,2}):(\d{2})", stripped)
        if not match or int(match.group(1)) > 23 or int(match.group(2)) > 59:
            raise ValueError(f"send_time must be HH:MM (24h), got: {v!r}")
        return stripped

    @property
    def hour(self) -> int:
        return int(self.send_time.split(":")[0])

    @property
    def minute(self) -> int:
        return int(self.send_time.split(":")[1])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the agent digest mailer."""

    domain: DomainConfig = Field(..., description="Active site domain")
    email: EmailConfig = Field(..., description="Email settings")
    search: SearchConfig = Field(default_factory=SearchConfig, description="Search settings")
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig, description="Worker pool")
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig, description="Daemon schedule")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    mail_assets_dir: Path = Field(
        Path("assets/mail"), description="Directory holding agent/images/*.png"
    )
    locale_dir: Optional[Path] = Field(
        None, description="Directory with mail.<lang>.yaml catalogs (packaged catalogs if unset)"
    )


class RunConfig(BaseModel):
    """Per-invocation settings passed to the Dispatcher."""

    environment: str = Field("local", description="Deployment environment name")
    force: bool = Field(False, description="Run even outside production")
    domain: DomainConfig

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == PRODUCTION_ENVIRONMENT

    @property
    def allowed(self) -> bool:
        """Whether the run may proceed past the production gate."""
        return self.is_production or self.force
