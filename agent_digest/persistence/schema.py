"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for subscribers (agents and their
languages, locations and professions) and the digest delivery log, and
provides conversion methods between ORM models and domain models.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from agent_digest.domain.models import DeliveryRecord, DeliveryStatus, DigestType, Subscriber

logger = logging.getLogger(__name__)

Base = declarative_base()


class AgentModel(Base):
    """ORM model for agents table.

    One row per saved search agent. Filter sets live in the child tables.
    """

    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(20), nullable=False, default=DigestType.VACANCIES.value)
    email = Column(String(255), nullable=False)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    keywords = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    languages = relationship(
        "AgentLanguageModel",
        order_by="AgentLanguageModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    locations = relationship(
        "AgentLocationModel",
        order_by="AgentLocationModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    professions = relationship(
        "AgentProfessionModel",
        order_by="AgentProfessionModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (Index("idx_agents_active", "active"),)

    def to_domain(self) -> Subscriber:
        """Convert ORM model to domain model.

        Unknown type codes fall back to the universal digest.

        Returns:
            Subscriber: Domain model instance
        """
        try:
            digest_type = DigestType(self.type)
        except ValueError:
            logger.warning(
                f"Agent {self.id} has unknown type {self.type!r}, using universal digest"
            )
            digest_type = DigestType.UNIVERSAL

        return Subscriber(
            id=self.id,
            digest_type=digest_type,
            email=self.email,
            email_confirmed=bool(self.email_confirmed),
            languages=[language.code for language in self.languages],
            locations={location.location_id: location.title for location in self.locations},
            professions={
                profession.profession_id: profession.title for profession in self.professions
            },
            keywords=self.keywords,
            active=bool(self.active),
        )

    @classmethod
    def from_domain(cls, subscriber: Subscriber) -> "AgentModel":
        """Create ORM model (with child rows) from domain model.

        Args:
            subscriber: Domain model instance

        Returns:
            AgentModel: ORM model instance
        """
        return cls(
            id=subscriber.id,
            type=subscriber.digest_type.value,
            email=subscriber.email,
            email_confirmed=subscriber.email_confirmed,
            keywords=subscriber.keywords or None,
            active=subscriber.active,
            languages=[
                AgentLanguageModel(code=code, position=position)
                for position, code in enumerate(subscriber.languages)
            ],
            locations=[
                AgentLocationModel(location_id=location_id, title=title, position=position)
                for position, (location_id, title) in enumerate(subscriber.locations.items())
            ],
            professions=[
                AgentProfessionModel(profession_id=profession_id, title=title, position=position)
                for position, (profession_id, title) in enumerate(subscriber.professions.items())
            ],
        )


class AgentLanguageModel(Base):
    """Content languages an agent wants listings in."""

    __tablename__ = "agent_languages"

    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True)
    code = Column(String(10), primary_key=True)
    position = Column(Integer, nullable=False, default=0)


class AgentLocationModel(Base):
    """Locations an agent filters on (id plus display title)."""

    __tablename__ = "agent_locations"

    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True)
    location_id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)


class AgentProfessionModel(Base):
    """Professions an agent filters on (id plus display title)."""

    __tablename__ = "agent_professions"

    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True)
    profession_id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)


class DigestDeliveryModel(Base):
    """ORM model for digest_deliveries table.

    One row per delivery key, claimed before the digest is handed to SMTP;
    any row (pending or sent) blocks a second send to the same subscriber on
    the same day.
    """

    __tablename__ = "digest_deliveries"

    delivery_key = Column(String(64), primary_key=True, nullable=False)
    subscriber_id = Column(Integer, nullable=False)
    digest_date = Column(String(10), nullable=False)
    status = Column(String(10), nullable=False, default=DeliveryStatus.PENDING.value)

    # Timestamps (stored as ISO 8601 strings)
    claimed_at = Column(String(50), nullable=False)
    sent_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_digest_deliveries_subscriber", "subscriber_id"),
        Index("idx_digest_deliveries_claimed_at", "claimed_at"),
    )

    def to_domain(self) -> DeliveryRecord:
        return DeliveryRecord(
            delivery_key=self.delivery_key,
            subscriber_id=self.subscriber_id,
            digest_date=self.digest_date,
            status=DeliveryStatus(self.status),
            claimed_at=_parse_datetime(self.claimed_at),
            sent_at=_parse_datetime(self.sent_at),
        )

    @classmethod
    def from_domain(cls, record: DeliveryRecord) -> "DigestDeliveryModel":
        return cls(
            delivery_key=record.delivery_key,
            subscriber_id=record.subscriber_id,
            digest_date=record.digest_date,
            status=record.status.value,
            claimed_at=_format_datetime(record.claimed_at),
            sent_at=_format_datetime(record.sent_at),
        )

    def mark_sent(self, sent_at: datetime) -> None:
        self.status = DeliveryStatus.SENT.value
        self.sent_at = _format_datetime(sent_at)


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO 8601 string for database storage.

    Args:
        dt: Datetime object (naive values are treated as UTC)

    Returns:
        ISO 8601 formatted string or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO 8601 string to timezone-aware UTC datetime."""
    if not dt_str:
        return None

    dt_str = dt_str.rstrip("Z")

    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        from sqlalchemy import inspect

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
