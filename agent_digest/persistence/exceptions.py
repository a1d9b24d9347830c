"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError, so a dispatcher can
treat any store failure for one subscriber as that subscriber's failure.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database URL is invalid or the database is unreachable."""

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations, e.g. inserting an agent id twice."""

    pass
