"""Unit tests for the scheduler service.

Tests the SchedulerService including:
- Daily cron job registration (UTC)
- Job defaults preventing overlapping runs
- Start/shutdown lifecycle
- Trigger now functionality
"""

import threading
from datetime import timezone
from unittest.mock import Mock

from apscheduler.triggers.cron import CronTrigger

from agent_digest.scheduler import SchedulerService
from agent_digest.scheduler.service import JOB_ID


class TestSchedulerService:
    """Test suite for SchedulerService."""

    def test_scheduler_initialization(self):
        mock_callable = Mock()
        shutdown_event = threading.Event()

        scheduler = SchedulerService(
            run_callable=mock_callable, hour=7, minute=0, shutdown_event=shutdown_event
        )

        assert scheduler.run_callable is mock_callable
        assert scheduler.shutdown_event is shutdown_event
        assert not scheduler.is_running()
        assert scheduler.get_next_run_time() is None

    def test_scheduler_registers_daily_job(self):
        scheduler = SchedulerService(run_callable=Mock(), hour=6, minute=30)

        scheduler.start()
        try:
            job = scheduler.scheduler.get_job(JOB_ID)
            assert job is not None
            assert isinstance(job.trigger, CronTrigger)
            assert job.max_instances == 1
            assert job.coalesce is True

            next_run = scheduler.get_next_run_time()
            assert next_run.utcoffset().total_seconds() == 0
            assert (next_run.hour, next_run.minute) == (6, 30)
        finally:
            scheduler.shutdown(wait=False)

    def test_scheduler_start_and_shutdown(self):
        shutdown_event = threading.Event()
        scheduler = SchedulerService(
            run_callable=Mock(), hour=7, minute=0, shutdown_event=shutdown_event
        )

        scheduler.start()
        assert scheduler.is_running()

        scheduler.shutdown(wait=False)
        assert not scheduler.is_running()
        assert shutdown_event.is_set()

    def test_shutdown_before_start(self):
        shutdown_event = threading.Event()
        scheduler = SchedulerService(
            run_callable=Mock(), hour=7, minute=0, shutdown_event=shutdown_event
        )

        scheduler.shutdown()

        assert shutdown_event.is_set()

    def test_trigger_now_calls_run_callable(self):
        mock_callable = Mock()
        scheduler = SchedulerService(run_callable=mock_callable, hour=7, minute=0)

        scheduler.trigger_now()

        mock_callable.assert_called_once_with()

    def test_scheduler_uses_utc(self):
        scheduler = SchedulerService(run_callable=Mock(), hour=7, minute=0)

        assert scheduler.scheduler.timezone.utcoffset(None) == timezone.utc.utcoffset(None)
