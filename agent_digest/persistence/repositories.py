"""Data access layer (repositories) for persistence operations.

This module provides repository classes for subscriber lookups and the
digest delivery log. Repositories encapsulate database operations and return
domain models rather than ORM models.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, ContextManager, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agent_digest.domain.models import DeliveryRecord, DeliveryStatus, Subscriber

from .database import get_session
from .exceptions import DataIntegrityError, PersistenceError
from .schema import AgentModel, DigestDeliveryModel

logger = logging.getLogger(__name__)


class SubscriberRepository:
    """Repository for saved search agents."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_active(self) -> List[Subscriber]:
        """Load all active agents, ordered by id.

        Returns:
            List of Subscriber domain models (empty list if none)

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(AgentModel).where(AgentModel.active.is_(True)).order_by(AgentModel.id)
            agent_models = self.session.execute(stmt).scalars().all()

            return [agent_model.to_domain() for agent_model in agent_models]

        except SQLAlchemyError as e:
            logger.error(f"Error loading active agents: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load active agents: {e}") from e

    def add(self, subscriber: Subscriber) -> Subscriber:
        """Insert an agent with its languages, locations and professions.

        Args:
            subscriber: Subscriber domain model to persist

        Returns:
            Persisted Subscriber domain model

        Raises:
            DataIntegrityError: If an agent with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            agent_model = AgentModel.from_domain(subscriber)
            self.session.add(agent_model)
            self.session.flush()
            return agent_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error adding agent {subscriber.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add agent due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding agent {subscriber.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add agent: {e}") from e


class DeliveryRepository:
    """Repository for the digest delivery log."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get(self, delivery_key: str) -> Optional[DeliveryRecord]:
        """Look up a delivery key.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(DigestDeliveryModel, delivery_key)
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error checking delivery {delivery_key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check delivery status: {e}") from e

    def claim(
        self,
        delivery_key: str,
        subscriber_id: int,
        digest_date: date,
        claimed_at: datetime,
    ) -> bool:
        """Insert a pending row for the key unless one exists.

        Args:
            delivery_key: Per-day, per-subscriber dedupe key
            subscriber_id: Subscriber the digest is for
            digest_date: Date the digest covers
            claimed_at: Claim time (UTC)

        Returns:
            True if this call claimed the key, False if it was already taken

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(DigestDeliveryModel, delivery_key)
            if existing:
                logger.debug(
                    f"Delivery key for subscriber {subscriber_id} already {existing.status}"
                )
                return False

            record = DeliveryRecord(
                delivery_key=delivery_key,
                subscriber_id=subscriber_id,
                digest_date=digest_date.isoformat(),
                status=DeliveryStatus.PENDING,
                claimed_at=claimed_at,
            )
            self.session.add(DigestDeliveryModel.from_domain(record))
            self.session.flush()
            return True

        except IntegrityError:
            # Another worker claimed the same key first
            self.session.rollback()
            return False
        except SQLAlchemyError as e:
            logger.error(
                f"Error claiming delivery for subscriber {subscriber_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to claim delivery: {e}") from e

    def mark_sent(self, delivery_key: str, sent_at: datetime) -> DeliveryRecord:
        """Mark a claimed key as sent.

        Raises:
            DataIntegrityError: If the key was never claimed
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(DigestDeliveryModel, delivery_key)
            if model is None:
                raise DataIntegrityError(f"Delivery {delivery_key} was not claimed")

            model.mark_sent(sent_at)
            self.session.flush()
            return model.to_domain()

        except SQLAlchemyError as e:
            logger.error(f"Error marking delivery {delivery_key} as sent: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark delivery as sent: {e}") from e

    def release(self, delivery_key: str) -> bool:
        """Delete a pending claim so a later run may send the digest.

        Sent rows are never released.

        Returns:
            True if a pending claim was deleted

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(DigestDeliveryModel, delivery_key)
            if model is None or model.status != DeliveryStatus.PENDING.value:
                return False

            self.session.delete(model)
            self.session.flush()
            return True

        except SQLAlchemyError as e:
            logger.error(f"Error releasing delivery {delivery_key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to release delivery: {e}") from e

    def get_for_subscriber(self, subscriber_id: int) -> List[DeliveryRecord]:
        """Deliveries claimed for one subscriber, newest first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(DigestDeliveryModel)
                .where(DigestDeliveryModel.subscriber_id == subscriber_id)
                .order_by(DigestDeliveryModel.claimed_at.desc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving deliveries for subscriber {subscriber_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve deliveries: {e}") from e


class DeliveryLog:
    """Delivery log operations, each committed in its own session scope.

    A claim must be durable before the digest is handed to SMTP, so it cannot
    share a transaction with the send.
    """

    def __init__(self, session_factory: Callable[[], ContextManager[Session]] = get_session):
        self.session_factory = session_factory

    def claim(
        self, delivery_key: str, subscriber_id: int, digest_date: date, claimed_at: datetime
    ) -> bool:
        """Claim the key; False if it is already pending or sent."""
        with self._scope(delivery_key) as repo:
            return repo.claim(delivery_key, subscriber_id, digest_date, claimed_at)

    def mark_sent(self, delivery_key: str, sent_at: datetime) -> DeliveryRecord:
        with self._scope(delivery_key) as repo:
            return repo.mark_sent(delivery_key, sent_at)

    def release(self, delivery_key: str) -> bool:
        with self._scope(delivery_key) as repo:
            return repo.release(delivery_key)

    @contextmanager
    def _scope(self, delivery_key: str) -> Iterator[DeliveryRepository]:
        try:
            with self.session_factory() as session:
                yield DeliveryRepository(session)
        except SQLAlchemyError as e:
            # Commit failures surface here rather than inside the repository
            logger.error(f"Error committing delivery {delivery_key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to commit delivery log: {e}") from e
