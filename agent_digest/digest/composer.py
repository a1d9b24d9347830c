"""Compose the per-subscriber digest from search results."""

from datetime import date
from pathlib import Path
from typing import Dict, List, Sequence

from agent_digest.config.models import DomainConfig
from agent_digest.domain.models import MAX_DIGEST_ITEMS, Digest, DigestType, Hit, Subscriber
from agent_digest.utils.hashing import compute_delivery_key, compute_unsubscribe_code
from agent_digest.utils.timestamps import format_digest_date

from .links import build_show_all_link
from .plural import plural_form
from .translations import TranslationCatalog

IMAGE_FILES = ("logo.png", "logo-fb.png", "logo-vk.png")
IMAGE_SUBDIR = Path("agent") / "images"

BASE_TAGS = ("Agent", "Agent mailing")
TYPE_TAGS = {
    DigestType.VACANCIES: "Agent vacancies",
    DigestType.CV: "Agent CV",
    DigestType.UNIVERSAL: "Agent vacancies",
}


def build_subject(
    subscriber: Subscriber,
    count: int,
    translations: TranslationCatalog,
    today: date,
) -> str:
    """Subject line: "<count> <phrase> <period> <dd.mm.yy>" plus a filter suffix.

    The suffix lists the keyword and regional location titles:
    " - python, Riga,Tallinn".
    """
    form = plural_form(subscriber.digest_type, count)
    phrase = translations.subject_phrase(subscriber.digest_type, form)
    subject = f"{count} {phrase} {translations.period} {format_digest_date(today)}"

    titles = list(subscriber.regional_locations().values())
    if subscriber.keywords or titles:
        subject += " - " + subscriber.keywords
        if subscriber.keywords and titles:
            subject += ", "
        subject += ",".join(titles)

    return subject


def image_manifest(mail_assets_dir: Path) -> Dict[str, str]:
    """Inline image filename -> file path."""
    image_dir = Path(mail_assets_dir) / IMAGE_SUBDIR
    return {name: str(image_dir / name) for name in IMAGE_FILES}


def delivery_tags(digest_type: DigestType) -> List[str]:
    return [*BASE_TAGS, TYPE_TAGS[digest_type]]


def compose_digest(
    subscriber: Subscriber,
    total_hits: int,
    hits: Sequence[Hit],
    translations: TranslationCatalog,
    domain: DomainConfig,
    today: date,
    mail_assets_dir: Path,
) -> Digest:
    """Build the digest for one subscriber.

    Args:
        subscriber: Subscriber the digest is for
        total_hits: Total matches reported by the search service
        hits: Ranked hits (at most MAX_DIGEST_ITEMS are kept)
        translations: Catalog for the domain language
        domain: Domain the digest links point to
        today: Digest date used in the subject and dedupe key
        mail_assets_dir: Directory holding agent/images/

    Returns:
        Digest ready for rendering and delivery
    """
    count = min(total_hits, MAX_DIGEST_ITEMS)
    form = plural_form(subscriber.digest_type, count)

    return Digest(
        subscriber_id=subscriber.id,
        digest_type=subscriber.digest_type,
        recipient=subscriber.email,
        subject=build_subject(subscriber, count, translations, today),
        header=translations.header_for(subscriber.digest_type),
        offers_count=translations.offers_noun(subscriber.digest_type, form),
        count=count,
        show_all=build_show_all_link(subscriber),
        unsubscribe={
            "email": subscriber.email,
            "code": compute_unsubscribe_code(subscriber.id),
        },
        hits=list(hits[:MAX_DIGEST_ITEMS]),
        images=image_manifest(mail_assets_dir),
        tags=delivery_tags(subscriber.digest_type),
        domain=domain.name,
        translations=dict(translations.mailing),
        delivery_key=compute_delivery_key(subscriber.id, today),
        digest_date=today,
    )
