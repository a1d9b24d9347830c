"""Core domain models for subscribers, search hits, and digests.

This module defines the data structures used throughout the application:
- Subscriber: read-only snapshot of a saved search agent
- Hit: a single listing returned by the search service
- SearchResult: total hit count plus ranked hits
- Digest: composed per-subscriber email content for one run
- DeliveryRecord: delivery log entry (claimed, then sent)
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Location id meaning "no geographic restriction"
WORLDWIDE_LOCATION_ID = 1

# Listing type codes stored in the search index
TYPE_JOB_OFFER = 0
TYPE_JOB_REQUEST = 1
TYPE_CV = 2

VACANCY_TYPE_CODES: Tuple[int, ...] = (TYPE_JOB_OFFER, TYPE_JOB_REQUEST)
CV_TYPE_CODES: Tuple[int, ...] = (TYPE_CV,)

MAX_DIGEST_ITEMS = 60


class DigestType(str, Enum):
    """Kind of listings a subscriber wants to receive."""

    VACANCIES = "vacancies"
    CV = "cv"
    UNIVERSAL = "universal"


class Subscriber(BaseModel):
    """Saved search agent with notification settings.

    Snapshot loaded once per run and never mutated. Locations and professions
    are ordered id -> title mappings; a location id equal to
    WORLDWIDE_LOCATION_ID means the subscriber accepts any location.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Subscriber (agent) id")
    digest_type: DigestType = Field(DigestType.VACANCIES, description="Digest type")
    email: str = Field(..., description="Delivery email address")
    email_confirmed: bool = Field(False, description="Whether the address was confirmed")
    languages: Tuple[str, ...] = Field(default_factory=tuple, description="Content language codes")
    locations: Dict[int, str] = Field(default_factory=dict, description="Location id -> title")
    professions: Dict[int, str] = Field(default_factory=dict, description="Profession id -> title")
    keywords: str = Field("", description="Free-text keyword query")
    active: bool = Field(True, description="Whether the agent is switched on")

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        """Strip whitespace from the email address."""
        return v.strip()

    @field_validator("keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, v: Optional[str]) -> str:
        """Treat missing keywords as an empty string."""
        if v is None:
            return ""
        return v.strip()

    @field_validator("languages", mode="before")
    @classmethod
    def normalize_languages(cls, v: Any) -> Tuple[str, ...]:
        """Lowercase language codes, keeping input order."""
        if v is None:
            return ()
        return tuple(str(code).strip().lower() for code in v if str(code).strip())

    def regional_locations(self) -> Dict[int, str]:
        """Locations other than the worldwide sentinel, in input order."""
        return {
            location_id: title
            for location_id, title in self.locations.items()
            if location_id != WORLDWIDE_LOCATION_ID
        }


class Hit(BaseModel):
    """A listing returned by the search service.

    Stored fields come back from the index as arrays; from_search_hit()
    unwraps them.
    """

    id: Optional[str] = None
    title: str = ""
    profession: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    offeror_name: Optional[str] = None
    rating: Optional[float] = None
    days: Optional[int] = None
    pricing_type: Optional[str] = None
    short_id: Optional[str] = None

    @classmethod
    def from_search_hit(cls, raw: Dict[str, Any]) -> "Hit":
        """Build a Hit from one entry of the response's hits.hits array."""
        fields = raw.get("fields") or {}

        def first(name: str) -> Any:
            value = fields.get(name)
            if isinstance(value, list):
                return value[0] if value else None
            return value

        def text(name: str) -> Optional[str]:
            value = first(name)
            return None if value is None else str(value)

        location = fields.get("location") or []
        if not isinstance(location, list):
            location = [location]

        return cls(
            id=None if raw.get("_id") is None else str(raw.get("_id")),
            title=text("title") or "",
            profession=text("profession"),
            locations=[str(item) for item in location],
            offeror_name=text("offerorName"),
            rating=first("rating"),
            days=first("days"),
            pricing_type=text("pricing_type"),
            short_id=text("shortId"),
        )


class SearchResult(BaseModel):
    """Search service response: total matches plus the ranked page."""

    total_hits: int = Field(..., ge=0)
    hits: List[Hit] = Field(default_factory=list)


class Digest(BaseModel):
    """Composed digest for one subscriber in one run."""

    model_config = ConfigDict(frozen=True)

    subscriber_id: int
    digest_type: DigestType
    recipient: str
    subject: str
    header: str
    offers_count: str
    count: int
    show_all: str
    unsubscribe: Dict[str, str]
    hits: List[Hit]
    images: Dict[str, str]
    tags: List[str]
    domain: str
    translations: Dict[str, Any]
    delivery_key: str
    digest_date: date

    def template_context(self) -> Dict[str, Any]:
        """Template variables for the mail body."""
        return {
            "showAll": self.show_all,
            "unsubscribe": self.unsubscribe,
            "offers": [hit.model_dump() for hit in self.hits],
            "domain": self.domain,
            "translations": {
                **self.translations,
                "header": self.header,
                "offersCount": self.offers_count,
            },
            "count": self.count,
            "subject": self.subject,
        }


class DeliveryStatus(str, Enum):
    """State of a delivery key in the delivery log."""

    PENDING = "pending"
    SENT = "sent"


class DeliveryRecord(BaseModel):
    """Delivery log entry for one subscriber's digest on one day.

    A PENDING record is written before the digest goes to the mail transport
    and blocks any further send for the same key, whether or not it is later
    marked SENT.
    """

    delivery_key: str = Field(..., description="Per-day, per-subscriber dedupe key")
    subscriber_id: int
    digest_date: str = Field(..., description="Digest date (YYYY-MM-DD)")
    status: DeliveryStatus = Field(DeliveryStatus.PENDING, description="Delivery state")
    claimed_at: datetime = Field(..., description="When the key was claimed (UTC)")
    sent_at: Optional[datetime] = Field(None, description="When SMTP accepted the digest (UTC)")

    @field_validator("claimed_at", "sent_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
