#!/usr/bin/env python3
"""Digest preview harness.

Composes and renders one digest for a sample subscriber without touching the
database or sending mail. It can operate in two modes:

1. Fixture mode (default): search responses come from a YAML fixture file
2. Live mode: queries the configured search service (requires network access)

Usage:
    # Preview with fixtures (no network required)
    python scripts/preview_digest.py --config config.yaml --language ru --location 3:Riga

    # Query the real search service
    DIGEST_PREVIEW_LIVE=1 python scripts/preview_digest.py --config config.yaml --type cv

    # Write the HTML body somewhere else
    python scripts/preview_digest.py --config config.yaml --html /tmp/digest.html
"""

import argparse
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from agent_digest.config.exceptions import ConfigurationError
from agent_digest.config.loader import load_config
from agent_digest.digest.composer import compose_digest
from agent_digest.digest.translations import YamlTranslationLoader
from agent_digest.domain.models import DigestType, Subscriber
from agent_digest.logging.config import configure_logging
from agent_digest.notifications.payloads import build_digest_context
from agent_digest.notifications.templates import TemplateRenderer
from agent_digest.search.exceptions import SearchUnavailable
from agent_digest.search.gateway import SearchGateway
from agent_digest.search.indices import select_indices
from agent_digest.search.query import compile_query
from agent_digest.utils.timestamps import utc_now
from tests.helpers.fake_search import FixtureSearchGateway


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def parse_pairs(values):
    """Parse repeated "id:title" arguments into an ordered mapping."""
    pairs = {}
    for value in values or []:
        key, _, title = value.partition(":")
        pairs[int(key)] = title or key
    return pairs


def build_subscriber(args) -> Subscriber:
    return Subscriber(
        id=args.subscriber_id,
        digest_type=DigestType(args.type),
        email=args.email,
        email_confirmed=True,
        languages=args.language or [],
        locations=parse_pairs(args.location),
        professions=parse_pairs(args.profession),
        keywords=args.keywords,
    )


def main():
    """Main entry point for the digest preview harness."""
    parser = argparse.ArgumentParser(
        description="Compose and render a sample digest",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to configuration file")
    parser.add_argument(
        "--fixtures",
        type=Path,
        default=Path("tests/fixtures/search_responses.yaml"),
        help="Search responses keyed by index target (default: tests/fixtures/search_responses.yaml)",
    )
    parser.add_argument(
        "--type",
        default=DigestType.VACANCIES.value,
        choices=[t.value for t in DigestType],
        help="Digest type (default: vacancies)",
    )
    parser.add_argument("--language", action="append", help="Content language (repeatable)")
    parser.add_argument("--location", action="append", help="Location as id:title (repeatable)")
    parser.add_argument(
        "--profession", action="append", help="Profession as id:title (repeatable)"
    )
    parser.add_argument("--keywords", default="", help="Keyword query")
    parser.add_argument("--subscriber-id", type=int, default=1, help="Subscriber id (default: 1)")
    parser.add_argument("--email", default="preview@example.com", help="Recipient address")
    parser.add_argument(
        "--html",
        type=Path,
        default=Path("data/digest_preview.html"),
        help="Where to write the HTML body (default: data/digest_preview.html)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )

    args = parser.parse_args()

    load_dotenv()
    use_live_search = os.environ.get("DIGEST_PREVIEW_LIVE", "0") == "1"

    print_header("Agent Digest - Preview")

    try:
        app_config, env_config = load_config(args.config)
        configure_logging(
            level=args.log_level,
            format_type=app_config.logging.format,
            environment="preview",
        )

        if use_live_search:
            print(f"Live search: {app_config.search.url}")
            gateway = SearchGateway(app_config.search)
        else:
            if not args.fixtures.exists():
                print(f"❌ Error: Fixture file not found: {args.fixtures}")
                print("   Run with DIGEST_PREVIEW_LIVE=1 to query the search service instead.")
                return 1
            print(f"Fixture mode: {args.fixtures}")
            gateway = FixtureSearchGateway(fixture_path=args.fixtures)

        subscriber = build_subscriber(args)
        translations = YamlTranslationLoader(app_config.locale_dir).load(
            app_config.domain.language
        )

        now = utc_now()
        request = compile_query(subscriber, app_config.domain.id, now)
        indices = select_indices(subscriber.languages, app_config.search.index_prefix)
        print(f"Index target: {indices}")

        result = gateway.execute(indices, request)
        print(f"Total hits: {result.total_hits}")

        if result.total_hits == 0:
            print("\nNo listings match; no digest would be sent.")
            return 0

        digest = compose_digest(
            subscriber,
            result.total_hits,
            result.hits,
            translations,
            app_config.domain,
            now.date(),
            app_config.mail_assets_dir,
        )
        rendered = TemplateRenderer().render(build_digest_context(digest))

        print_header("Subject")
        print(digest.subject)
        print_header("Plain Text Body")
        print(rendered["text_body"])

        args.html.parent.mkdir(parents=True, exist_ok=True)
        args.html.write_text(rendered["html_body"], encoding="utf-8")
        print("-" * 80)
        print(f"HTML body written to {args.html.absolute()}")
        print(f"Tags: {', '.join(digest.tags)}")
        print("-" * 80 + "\n")
        return 0

    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}")
        return 1
    except SearchUnavailable as e:
        print(f"\n❌ Search failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
