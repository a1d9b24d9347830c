"""Unit tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from agent_digest.domain.models import (
    WORLDWIDE_LOCATION_ID,
    DeliveryRecord,
    DeliveryStatus,
    DigestType,
    Hit,
    SearchResult,
    Subscriber,
)


class TestSubscriber:
    """Tests for the Subscriber snapshot."""

    def test_valid_subscriber(self):
        subscriber = Subscriber(
            id=42,
            digest_type="cv",
            email="  reader@example.com ",
            email_confirmed=True,
            languages=["RU", " en"],
            locations={3: "Riga"},
            professions={12: "IT"},
            keywords=" python ",
        )

        assert subscriber.digest_type == DigestType.CV
        assert subscriber.email == "reader@example.com"
        assert subscriber.languages == ("ru", "en")
        assert subscriber.keywords == "python"
        assert subscriber.active is True

    def test_defaults(self):
        subscriber = Subscriber(id=1, email="reader@example.com")

        assert subscriber.digest_type == DigestType.VACANCIES
        assert subscriber.email_confirmed is False
        assert subscriber.languages == ()
        assert subscriber.keywords == ""

    def test_none_keywords_and_languages(self):
        subscriber = Subscriber(id=1, email="reader@example.com", keywords=None, languages=None)

        assert subscriber.keywords == ""
        assert subscriber.languages == ()

    def test_unknown_digest_type_rejected(self):
        with pytest.raises(ValidationError):
            Subscriber(id=1, email="reader@example.com", digest_type="jobs")

    def test_snapshot_is_frozen(self):
        subscriber = Subscriber(id=1, email="reader@example.com")

        with pytest.raises(ValidationError):
            subscriber.email = "other@example.com"

    def test_regional_locations_drop_worldwide(self):
        subscriber = Subscriber(
            id=1,
            email="reader@example.com",
            locations={WORLDWIDE_LOCATION_ID: "Worldwide", 7: "Tallinn", 3: "Riga"},
        )

        assert subscriber.regional_locations() == {7: "Tallinn", 3: "Riga"}
        assert list(subscriber.regional_locations()) == [7, 3]


class TestHit:
    """Tests for Hit.from_search_hit."""

    def test_unwraps_stored_fields(self):
        hit = Hit.from_search_hit(
            {
                "_id": "101",
                "fields": {
                    "title": ["Python developer"],
                    "profession": ["IT"],
                    "location": ["Riga", "Remote"],
                    "offerorName": ["Acme"],
                    "rating": [4.5],
                    "days": [1],
                    "pricing_type": [0],
                    "shortId": ["a1b2"],
                },
            }
        )

        assert hit.id == "101"
        assert hit.title == "Python developer"
        assert hit.profession == "IT"
        assert hit.locations == ["Riga", "Remote"]
        assert hit.offeror_name == "Acme"
        assert hit.rating == 4.5
        assert hit.days == 1
        assert hit.pricing_type == "0"
        assert hit.short_id == "a1b2"

    def test_missing_fields(self):
        hit = Hit.from_search_hit({"_id": "7"})

        assert hit.title == ""
        assert hit.locations == []
        assert hit.short_id is None
        assert hit.offeror_name is None

    def test_scalar_location(self):
        hit = Hit.from_search_hit({"_id": "7", "fields": {"location": "Riga", "title": []}})

        assert hit.locations == ["Riga"]
        assert hit.title == ""


class TestSearchResult:
    """Tests for SearchResult."""

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationError):
            SearchResult(total_hits=-1)


class TestDeliveryRecord:
    """Tests for DeliveryRecord."""

    def test_new_record_is_pending(self):
        record = DeliveryRecord(
            delivery_key="k",
            subscriber_id=1,
            digest_date="2024-03-15",
            claimed_at=datetime(2024, 3, 15, 7, 0, tzinfo=timezone.utc),
        )

        assert record.status == DeliveryStatus.PENDING
        assert record.sent_at is None

    def test_naive_timestamps_become_utc(self):
        record = DeliveryRecord(
            delivery_key="k",
            subscriber_id=1,
            digest_date="2024-03-15",
            status=DeliveryStatus.SENT,
            claimed_at=datetime(2024, 3, 15, 7, 0),
            sent_at=datetime(2024, 3, 15, 7, 1),
        )

        assert record.claimed_at.tzinfo == timezone.utc
        assert record.sent_at.tzinfo == timezone.utc

    def test_aware_sent_at_converted(self):
        record = DeliveryRecord(
            delivery_key="k",
            subscriber_id=1,
            digest_date="2024-03-15",
            claimed_at=datetime(2024, 3, 15, 7, 0, tzinfo=timezone.utc),
            sent_at=datetime(2024, 3, 15, 9, 0, tzinfo=timezone(timedelta(hours=2))),
        )

        assert record.sent_at == datetime(2024, 3, 15, 7, 0, tzinfo=timezone.utc)
        assert record.sent_at.tzinfo == timezone.utc
