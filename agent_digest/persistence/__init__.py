"""Persistence layer: subscriber store and digest delivery log.

Example usage:
    >>> from agent_digest.persistence import init_database, get_session, SubscriberRepository
    >>>
    >>> init_database("sqlite:///./data/agent_digest.db")
    >>>
    >>> with get_session() as session:
    ...     subscribers = SubscriberRepository(session).get_active()
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import DatabaseConnectionError, DataIntegrityError, PersistenceError
from .repositories import DeliveryLog, DeliveryRepository, SubscriberRepository

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "SubscriberRepository",
    "DeliveryRepository",
    "DeliveryLog",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
]
