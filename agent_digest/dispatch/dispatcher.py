"""Run orchestration: one digest per active subscriber."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, ContextManager, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from agent_digest.config.environment import EnvironmentConfig
from agent_digest.config.exceptions import ConfigurationError
from agent_digest.config.models import AppConfig, RunConfig
from agent_digest.digest.composer import compose_digest
from agent_digest.digest.translations import TranslationCatalog, TranslationLoader
from agent_digest.domain.models import Subscriber
from agent_digest.logging import get_logger
from agent_digest.logging.context import log_context
from agent_digest.notifications.models import DeliveryError
from agent_digest.notifications.service import NotificationService
from agent_digest.persistence.database import get_session
from agent_digest.persistence.exceptions import PersistenceError
from agent_digest.persistence.repositories import DeliveryLog, SubscriberRepository
from agent_digest.search.exceptions import SearchUnavailable
from agent_digest.search.gateway import SearchGateway
from agent_digest.search.indices import select_indices
from agent_digest.search.query import compile_query
from agent_digest.utils.timestamps import utc_now

from .models import DispatchRunResult, OutcomeStatus, RunState, SubscriberOutcome

logger = get_logger(__name__, component="dispatch")

SessionFactory = Callable[[], ContextManager[Session]]


class Dispatcher:
    """
    Sends the daily digest to every active subscriber.

    Per subscriber: compile the query, search, compose the digest and hand it
    to the notification service. Subscribers run on a bounded thread pool and
    share only the translation catalog and the transport clients. A failure
    for one subscriber is recorded in its outcome and never stops the run.
    """

    def __init__(
        self,
        run_config: RunConfig,
        app_config: AppConfig,
        env_config: EnvironmentConfig,
        translation_loader: TranslationLoader,
        search_gateway: SearchGateway,
        notification_service: NotificationService,
        subscriber_provider: Optional[Callable[[], List[Subscriber]]] = None,
        session_factory: SessionFactory = get_session,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            run_config: Gate settings and active domain
            app_config: Application configuration
            env_config: Environment configuration (SMTP settings)
            translation_loader: Loads the catalog for the domain language
            search_gateway: Search service client
            notification_service: Digest delivery service
            subscriber_provider: Returns the subscribers to process
                (active agents from the database if None)
            session_factory: Session scope for subscribers and the delivery log
            clock: Returns the current UTC time
        """
        self.run_config = run_config
        self.app_config = app_config
        self.env_config = env_config
        self.translation_loader = translation_loader
        self.search_gateway = search_gateway
        self.notification_service = notification_service
        self.subscriber_provider = subscriber_provider or self._load_active_subscribers
        self.session_factory = session_factory
        self.delivery_log = DeliveryLog(session_factory)
        self.clock = clock

        self.state = RunState.IDLE
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def request_stop(self) -> None:
        """Stop starting new subscribers; in-flight ones finish normally."""
        logger.info("Stop requested", extra={"event": "dispatch.run.stop_requested"})
        self._stop_event.set()

    def run(self) -> DispatchRunResult:
        """
        Execute one run.

        Returns:
            DispatchRunResult; `skipped` is set when the production gate is
            closed or another run is in progress, and state is ABORTED when
            translations or subscribers cannot be loaded.
        """
        run_id = uuid4().hex
        run_started_at = self.clock()

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Run skipped: previous run still in progress",
                    extra={"event": "dispatch.run.skipped", "reason": "run_in_progress"},
                )
            return DispatchRunResult(
                run_id=run_id,
                state=RunState.RUNNING,
                run_started_at=run_started_at,
                run_finished_at=self.clock(),
                skipped=True,
                skip_reason="run_in_progress",
            )

        try:
            with log_context(run_id=run_id):
                self.state = RunState.IDLE
                self._stop_event.clear()
                return self._run(run_id, run_started_at)
        finally:
            self._lock.release()

    def _run(self, run_id: str, run_started_at: datetime) -> DispatchRunResult:
        if not self.run_config.allowed:
            logger.info(
                f"Agents are sent only in production (environment: "
                f"{self.run_config.environment}). Use --force to run anyway.",
                extra={"event": "dispatch.run.skipped", "reason": "not_production"},
            )
            return DispatchRunResult(
                run_id=run_id,
                state=RunState.IDLE,
                run_started_at=run_started_at,
                run_finished_at=self.clock(),
                skipped=True,
                skip_reason="not_production",
            )

        self.state = RunState.RUNNING
        domain = self.run_config.domain
        logger.info(
            f"Run started for domain {domain.name}",
            extra={
                "event": "dispatch.run.started",
                "domain_id": domain.id,
                "language": domain.language,
                "forced": self.run_config.force,
            },
        )

        try:
            translations = self.translation_loader.load(domain.language)
        except ConfigurationError as e:
            return self._abort(run_id, run_started_at, f"Translations unavailable: {e}")

        try:
            subscribers = self.subscriber_provider()
        except PersistenceError as e:
            return self._abort(run_id, run_started_at, f"Failed to load subscribers: {e}")

        logger.info(
            f"Processing {len(subscribers)} subscribers",
            extra={
                "event": "dispatch.subscribers.loaded",
                "subscriber_count": len(subscribers),
                "concurrency": self.app_config.dispatch.concurrency,
            },
        )

        now = self.clock()
        outcomes = self._dispatch(subscribers, translations, run_id, now)

        self.state = RunState.COMPLETED
        result = DispatchRunResult(
            run_id=run_id,
            state=RunState.COMPLETED,
            run_started_at=run_started_at,
            run_finished_at=self.clock(),
            outcomes=outcomes,
        )

        logger.info(
            f"Run completed: {result.sent} sent, {result.skipped_subscribers} skipped, "
            f"{result.duplicates} duplicates, {result.failed} failed, "
            f"{result.cancelled} cancelled",
            extra={
                "event": "dispatch.run.completed",
                "duration_ms": int(result.duration_seconds * 1000),
                "sent": result.sent,
                "skipped": result.skipped_subscribers,
                "duplicates": result.duplicates,
                "failed": result.failed,
                "cancelled": result.cancelled,
            },
        )

        return result

    def _abort(self, run_id: str, run_started_at: datetime, reason: str) -> DispatchRunResult:
        self.state = RunState.ABORTED
        logger.error(reason, extra={"event": "dispatch.run.aborted"})
        return DispatchRunResult(
            run_id=run_id,
            state=RunState.ABORTED,
            run_started_at=run_started_at,
            run_finished_at=self.clock(),
            error=reason,
        )

    def _dispatch(
        self,
        subscribers: List[Subscriber],
        translations: TranslationCatalog,
        run_id: str,
        now: datetime,
    ) -> List[SubscriberOutcome]:
        """Process subscribers on the worker pool; outcomes keep input order."""
        if not subscribers:
            return []

        workers = min(self.app_config.dispatch.concurrency, len(subscribers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="agent-digest") as executor:
            futures = [
                executor.submit(self._process_guarded, subscriber, translations, run_id, now)
                for subscriber in subscribers
            ]
            return [future.result() for future in futures]

    def _process_guarded(
        self,
        subscriber: Subscriber,
        translations: TranslationCatalog,
        run_id: str,
        now: datetime,
    ) -> SubscriberOutcome:
        # Worker threads do not inherit the caller's log context
        with log_context(run_id=run_id, subscriber_id=subscriber.id):
            try:
                return self.process_subscriber(subscriber, translations, now)
            except Exception as e:
                logger.error(
                    f"Unexpected error processing subscriber {subscriber.id}: {e}",
                    exc_info=True,
                    extra={"event": "subscriber.failed", "error_type": type(e).__name__},
                )
                return SubscriberOutcome(
                    subscriber_id=subscriber.id,
                    status=OutcomeStatus.FAILED,
                    reason="unexpected_error",
                    error=str(e),
                )

    def process_subscriber(
        self,
        subscriber: Subscriber,
        translations: TranslationCatalog,
        now: datetime,
    ) -> SubscriberOutcome:
        """Search, compose and deliver one subscriber's digest."""
        if self._stop_event.is_set():
            return SubscriberOutcome(subscriber.id, OutcomeStatus.CANCELLED, reason="stop_requested")

        if not subscriber.email_confirmed:
            logger.debug(
                "Skipping subscriber with unconfirmed email",
                extra={"event": "subscriber.skipped", "reason": "unconfirmed"},
            )
            return SubscriberOutcome(subscriber.id, OutcomeStatus.SKIPPED, reason="unconfirmed")

        domain = self.run_config.domain
        request = compile_query(subscriber, domain.id, now)
        indices = select_indices(subscriber.languages, self.app_config.search.index_prefix)

        try:
            search_result = self.search_gateway.execute(indices, request)
        except SearchUnavailable as e:
            logger.error(
                f"Search failed for subscriber {subscriber.id}: {e}",
                extra={"event": "subscriber.search.failed", "attempts": e.attempts},
            )
            return SubscriberOutcome(
                subscriber.id,
                OutcomeStatus.FAILED,
                reason="search_unavailable",
                error=str(e),
            )

        if search_result.total_hits == 0:
            logger.debug(
                "No new listings for subscriber",
                extra={"event": "subscriber.skipped", "reason": "no_hits"},
            )
            return SubscriberOutcome(subscriber.id, OutcomeStatus.SKIPPED, reason="no_hits")

        digest = compose_digest(
            subscriber,
            search_result.total_hits,
            search_result.hits,
            translations,
            domain,
            now.date(),
            self.app_config.mail_assets_dir,
        )

        try:
            delivery = self.notification_service.send_digest(
                digest, self.env_config, self.app_config.email, self.delivery_log
            )
        except DeliveryError as e:
            logger.error(
                f"Delivery failed for subscriber {subscriber.id}: {e}",
                extra={"event": "subscriber.delivery.failed", "error_type": type(e).__name__},
            )
            return SubscriberOutcome(
                subscriber.id,
                OutcomeStatus.FAILED,
                reason="delivery_failed",
                total_hits=search_result.total_hits,
                attempts=e.attempts,
                error=str(e),
            )
        except PersistenceError as e:
            logger.error(
                f"Delivery log unavailable for subscriber {subscriber.id}: {e}",
                extra={"event": "subscriber.delivery.failed", "error_type": type(e).__name__},
            )
            return SubscriberOutcome(
                subscriber.id,
                OutcomeStatus.FAILED,
                reason="delivery_log_unavailable",
                total_hits=search_result.total_hits,
                error=str(e),
            )

        status = OutcomeStatus.SENT if delivery.is_success() else OutcomeStatus.DUPLICATE
        return SubscriberOutcome(
            subscriber.id,
            status,
            total_hits=search_result.total_hits,
            attempts=delivery.attempts,
        )

    def _load_active_subscribers(self) -> List[Subscriber]:
        with self.session_factory() as session:
            return SubscriberRepository(session).get_active()
