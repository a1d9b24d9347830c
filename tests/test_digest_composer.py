"""Tests for digest composition."""

import hashlib
from datetime import date

from agent_digest.digest.composer import build_subject, compose_digest
from agent_digest.domain.models import DigestType, Hit
from agent_digest.utils.hashing import compute_delivery_key

TODAY = date(2024, 3, 15)


def make_hits(n):
    return [Hit(id=str(i), title=f"Listing {i}", short_id=f"s{i}") for i in range(n)]


class TestSubject:
    """Subject line construction."""

    def test_plain_subject(self, make_subscriber, catalog):
        subject = build_subject(make_subscriber(), 5, catalog, TODAY)

        assert subject == "5 новых вакансий за 15.03.24"

    def test_one_and_few_forms(self, make_subscriber, catalog):
        assert build_subject(make_subscriber(), 21, catalog, TODAY) == "21 новая вакансия за 15.03.24"
        assert build_subject(make_subscriber(), 3, catalog, TODAY) == "3 новые вакансии за 15.03.24"

    def test_cv_eleven_uses_one_form(self, make_subscriber, catalog):
        subscriber = make_subscriber(digest_type=DigestType.CV)

        assert build_subject(subscriber, 11, catalog, TODAY) == "11 новое резюме за 15.03.24"

    def test_keyword_and_locations_suffix(self, make_subscriber, catalog):
        subscriber = make_subscriber(
            keywords="python", locations={1: "Worldwide", 3: "Riga", 7: "Tallinn"}
        )

        assert (
            build_subject(subscriber, 2, catalog, TODAY)
            == "2 новые вакансии за 15.03.24 - python, Riga,Tallinn"
        )

    def test_locations_only_suffix(self, make_subscriber, catalog):
        subscriber = make_subscriber(locations={3: "Riga"})

        assert build_subject(subscriber, 1, catalog, TODAY) == "1 новая вакансия за 15.03.24 - Riga"

    def test_keyword_only_suffix(self, make_subscriber, catalog):
        subscriber = make_subscriber(keywords="python")

        assert build_subject(subscriber, 1, catalog, TODAY) == "1 новая вакансия за 15.03.24 - python"


class TestComposeDigest:
    """Full digest composition."""

    def test_count_is_capped_at_sixty(self, make_subscriber, catalog, domain_config, mail_assets_dir):
        digest = compose_digest(
            make_subscriber(), 75, make_hits(60), catalog, domain_config, TODAY, mail_assets_dir
        )

        assert digest.count == 60
        assert digest.subject.startswith("60 новых вакансий")
        assert digest.offers_count == "вакансий"
        assert len(digest.hits) == 60

    def test_digest_fields(self, make_subscriber, catalog, domain_config, mail_assets_dir):
        subscriber = make_subscriber(
            id=42, digest_type=DigestType.CV, locations={3: "Riga"}, professions={12: "IT"}
        )

        digest = compose_digest(
            subscriber, 2, make_hits(2), catalog, domain_config, TODAY, mail_assets_dir
        )

        assert digest.recipient == "reader@example.com"
        assert digest.header == catalog.mailing["headerCV"]
        assert digest.offers_count == "резюме"
        assert digest.show_all == "/cv?location=3/&profession=12/"
        assert digest.unsubscribe == {
            "email": "reader@example.com",
            "code": hashlib.sha1(b"42").hexdigest(),
        }
        assert digest.tags == ["Agent", "Agent mailing", "Agent CV"]
        assert digest.domain == "example.lv"
        assert digest.delivery_key == compute_delivery_key(42, TODAY)
        assert digest.digest_date == TODAY

    def test_image_manifest(self, make_subscriber, catalog, domain_config, mail_assets_dir):
        digest = compose_digest(
            make_subscriber(), 1, make_hits(1), catalog, domain_config, TODAY, mail_assets_dir
        )

        image_dir = mail_assets_dir / "agent" / "images"
        assert digest.images == {
            "logo.png": str(image_dir / "logo.png"),
            "logo-fb.png": str(image_dir / "logo-fb.png"),
            "logo-vk.png": str(image_dir / "logo-vk.png"),
        }

    def test_universal_digest(self, make_subscriber, catalog, domain_config, mail_assets_dir):
        subscriber = make_subscriber(digest_type=DigestType.UNIVERSAL)

        digest = compose_digest(
            subscriber, 1, make_hits(1), catalog, domain_config, TODAY, mail_assets_dir
        )

        assert digest.offers_count == "ваканся"
        assert digest.header == catalog.mailing["headerVacancies"]
        assert digest.tags == ["Agent", "Agent mailing", "Agent vacancies"]
        assert digest.show_all == ""

    def test_template_context(self, make_subscriber, catalog, domain_config, mail_assets_dir):
        digest = compose_digest(
            make_subscriber(), 2, make_hits(2), catalog, domain_config, TODAY, mail_assets_dir
        )

        context = digest.template_context()

        assert context["count"] == 2
        assert context["translations"]["header"] == catalog.mailing["headerVacancies"]
        assert context["translations"]["offersCount"] == "вакансии"
        assert context["translations"]["showAll"] == catalog.mailing["showAll"]
        assert [offer["title"] for offer in context["offers"]] == ["Listing 0", "Listing 1"]
