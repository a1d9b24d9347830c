"""End-to-end digest run: database subscribers, fixture search, mocked SMTP."""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

from agent_digest.digest.translations import YamlTranslationLoader
from agent_digest.dispatch import Dispatcher, OutcomeStatus, RunState
from agent_digest.domain.models import DeliveryStatus, DigestType
from agent_digest.notifications.models import SMTPDeliveryError
from agent_digest.notifications.service import NotificationService
from agent_digest.notifications.smtp_client import SMTPClient
from agent_digest.persistence import DeliveryRepository, SubscriberRepository, get_session
from agent_digest.persistence.exceptions import PersistenceError
from agent_digest.utils.hashing import compute_delivery_key
from tests.helpers import FixtureSearchGateway

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
NOW = datetime(2024, 3, 15, 7, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def smtp_client():
    return Mock(spec=SMTPClient)


@pytest.fixture
def search_gateway():
    return FixtureSearchGateway(fixture_path=FIXTURES_DIR / "search_responses.yaml")


@pytest.fixture
def seeded_database(test_database, make_subscriber):
    """Four agents: one to receive mail, one unconfirmed, one without hits, one inactive."""
    with get_session() as session:
        repo = SubscriberRepository(session)
        repo.add(make_subscriber(id=1, locations={3: "Riga"}, professions={12: "IT"}))
        repo.add(make_subscriber(id=2, email="pending@example.com", email_confirmed=False))
        repo.add(make_subscriber(id=3, email="english@example.com", languages=["en"]))
        repo.add(make_subscriber(id=4, email="paused@example.com", active=False))
    return test_database


@pytest.fixture
def dispatcher(seeded_database, run_config, app_config, env_config, search_gateway, smtp_client):
    return Dispatcher(
        run_config=run_config,
        app_config=app_config,
        env_config=env_config,
        translation_loader=YamlTranslationLoader(),
        search_gateway=search_gateway,
        notification_service=NotificationService(smtp_client=smtp_client, sleep=lambda _: None),
        clock=lambda: NOW,
    )


class TestDigestRun:
    """Full run against the database."""

    def test_run_sends_one_digest(self, dispatcher, smtp_client, search_gateway):
        result = dispatcher.run()

        assert result.state == RunState.COMPLETED
        assert [o.subscriber_id for o in result.outcomes] == [1, 2, 3]
        assert [o.status for o in result.outcomes] == [
            OutcomeStatus.SENT,
            OutcomeStatus.SKIPPED,
            OutcomeStatus.SKIPPED,
        ]
        assert sorted(search_gateway.searched_indices) == ["offers-en", "offers-ru"]

        smtp_client.send.assert_called_once()
        message = smtp_client.send.call_args.args[0]
        assert message["To"] == "reader@example.com"
        assert message["Subject"] == "2 новые вакансии за 15.03.24 - Riga"
        assert message.get_all("X-Mailgun-Tag") == ["Agent", "Agent mailing", "Agent vacancies"]

        html = message.get_body(preferencelist=("html",)).get_content()
        assert "Python developer" in html
        assert "https://example.lv/offer/a1b2" in html
        assert "cid:logo.png" in html

        text = message.get_body(preferencelist=("plain",)).get_content()
        assert "Backend engineer" in text

        image_ids = sorted(
            part["Content-ID"] for part in message.walk() if part.get_content_maintype() == "image"
        )
        assert image_ids == ["<logo-fb.png>", "<logo-vk.png>", "<logo.png>"]

    def test_delivery_is_recorded(self, dispatcher):
        dispatcher.run()

        with get_session() as session:
            records = DeliveryRepository(session).get_for_subscriber(1)

        assert len(records) == 1
        assert records[0].delivery_key == compute_delivery_key(1, NOW.date())
        assert records[0].digest_date == "2024-03-15"
        assert records[0].status == DeliveryStatus.SENT

    def test_same_day_rerun_sends_nothing(self, dispatcher, smtp_client):
        dispatcher.run()
        second = dispatcher.run()

        assert second.duplicates == 1
        assert second.sent == 0
        smtp_client.send.assert_called_once()

    def test_failed_send_is_retried_next_run(self, dispatcher, smtp_client):
        smtp_client.send.side_effect = SMTPDeliveryError("connection refused")

        first = dispatcher.run()

        assert first.failed == 1
        assert first.outcomes[0].attempts == 3
        with get_session() as session:
            assert DeliveryRepository(session).get_for_subscriber(1) == []

        smtp_client.send.side_effect = None
        second = dispatcher.run()

        assert second.sent == 1

    def test_cv_subscriber_gets_cv_digest(self, seeded_database, make_subscriber, dispatcher, smtp_client):
        with get_session() as session:
            SubscriberRepository(session).add(
                make_subscriber(id=5, email="hr@example.com", digest_type=DigestType.CV)
            )

        result = dispatcher.run()

        assert result.sent == 2
        subjects = {
            call.args[0]["To"]: call.args[0]["Subject"] for call in smtp_client.send.call_args_list
        }
        assert subjects["hr@example.com"] == "2 новых резюме за 15.03.24"

    def test_unconfirmed_delivery_is_not_resent(self, dispatcher, smtp_client, monkeypatch):
        def fail_mark_sent(self, delivery_key, sent_at):
            raise PersistenceError("disk full")

        monkeypatch.setattr(DeliveryRepository, "mark_sent", fail_mark_sent)

        first = dispatcher.run()

        assert first.outcomes[0].status == OutcomeStatus.SENT
        assert first.failed == 0
        with get_session() as session:
            records = DeliveryRepository(session).get_for_subscriber(1)
        assert [r.status for r in records] == [DeliveryStatus.PENDING]

        second = dispatcher.run()

        assert second.outcomes[0].status == OutcomeStatus.DUPLICATE
        smtp_client.send.assert_called_once()
