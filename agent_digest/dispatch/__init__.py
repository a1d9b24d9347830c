"""Digest run orchestration."""

from .dispatcher import Dispatcher
from .models import DispatchRunResult, OutcomeStatus, RunState, SubscriberOutcome

__all__ = [
    "Dispatcher",
    "DispatchRunResult",
    "OutcomeStatus",
    "RunState",
    "SubscriberOutcome",
]
