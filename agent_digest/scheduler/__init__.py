"""Scheduling for daemon mode: one dispatcher run per day."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
