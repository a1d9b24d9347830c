"""Data models for digest run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class RunState(str, Enum):
    """Dispatcher lifecycle: IDLE -> RUNNING -> COMPLETED | ABORTED."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class OutcomeStatus(str, Enum):
    """What happened to one subscriber in a run."""

    SENT = "sent"
    SKIPPED = "skipped"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class SubscriberOutcome:
    """
    Result of processing a single subscriber.

    Attributes:
        subscriber_id: Subscriber (agent) id
        status: Outcome status
        reason: Short machine-readable reason for skips and failures
            ("unconfirmed", "no_hits", "search_unavailable", ...)
        total_hits: Total matches reported by the search service
        attempts: Send attempts made
        error: Error message for failures
    """

    subscriber_id: int
    status: OutcomeStatus
    reason: Optional[str] = None
    total_hits: int = 0
    attempts: int = 0
    error: Optional[str] = None


@dataclass
class DispatchRunResult:
    """
    Aggregate results of one dispatcher run.

    Attributes:
        run_id: Identifier stamped on every log of the run
        state: Final dispatcher state
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run ended
        outcomes: Per-subscriber outcomes, in subscriber order
        skipped: Whether the run did nothing (gate closed or run in progress)
        skip_reason: "not_production" or "run_in_progress"
        error: Abort reason for ABORTED runs
    """

    run_id: str
    state: RunState
    run_started_at: datetime
    run_finished_at: datetime
    outcomes: List[SubscriberOutcome] = field(default_factory=list)
    skipped: bool = False
    skip_reason: Optional[str] = None
    error: Optional[str] = None

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def sent(self) -> int:
        return self.count(OutcomeStatus.SENT)

    @property
    def skipped_subscribers(self) -> int:
        return self.count(OutcomeStatus.SKIPPED)

    @property
    def duplicates(self) -> int:
        return self.count(OutcomeStatus.DUPLICATE)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)

    @property
    def cancelled(self) -> int:
        return self.count(OutcomeStatus.CANCELLED)

    @property
    def duration_seconds(self) -> float:
        return (self.run_finished_at - self.run_started_at).total_seconds()

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED
