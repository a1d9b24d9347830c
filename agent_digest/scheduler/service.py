"""Scheduler service for the daily digest run."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from agent_digest.logging import get_logger

logger = get_logger(__name__, component="scheduler")

JOB_ID = "agent-digest"

# A run delayed by more than this (e.g. host asleep) is dropped until the next day
MISFIRE_GRACE_SECONDS = 3600


class SchedulerService:
    """
    Wraps APScheduler to run the dispatcher once a day at a fixed UTC time.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown.
    """

    def __init__(
        self,
        run_callable: Callable[[], object],
        hour: int,
        minute: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            run_callable: Function to call on each scheduled run (e.g. dispatcher.run)
            hour: UTC hour of the daily run
            minute: Minute of the daily run
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.run_callable = run_callable
        self.hour = hour
        self.minute = minute
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the daily job and start the scheduler."""
        trigger = CronTrigger(hour=self.hour, minute=self.minute, timezone=timezone.utc)

        self.scheduler.add_job(
            func=self.run_callable,
            trigger=trigger,
            id=JOB_ID,
            name="Agent digest mailing",
            replace_existing=True,
        )
        self.scheduler.start()

        next_run = self.get_next_run_time()
        logger.info(
            f"Scheduler started, daily run at {self.hour:02d}:{self.minute:02d} UTC",
            extra={
                "event": "scheduler.started",
                "next_run_time": next_run.isoformat() if next_run else None,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler.

        Args:
            wait: If True, wait for a running dispatch to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> None:
        """Run the callable synchronously in the current thread."""
        logger.info("Triggering immediate run", extra={"event": "scheduler.trigger_now"})
        self.run_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
