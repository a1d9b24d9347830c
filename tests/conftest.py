"""Shared pytest fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from agent_digest.config.environment import EnvironmentConfig
from agent_digest.config.models import (
    AppConfig,
    DispatchConfig,
    DomainConfig,
    EmailConfig,
    RunConfig,
    SearchConfig,
)
from agent_digest.digest.translations import YamlTranslationLoader
from agent_digest.domain.models import DigestType, Subscriber
from agent_digest.logging.context import clear_log_context
from agent_digest.persistence import close_database, init_database

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# 2024-03-15 07:00 UTC
FIXED_NOW = datetime(2024, 3, 15, 7, 0, 0, tzinfo=timezone.utc)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set required environment variables and clear optional overrides."""
    monkeypatch.setenv("SMTP_HOST", "smtp.test.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_USER", "user@test.com")
    monkeypatch.setenv("SMTP_PASS", "testpass123")
    monkeypatch.setenv("ENVIRONMENT", "production")
    for name in ("SEARCH_URL", "LOG_LEVEL", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def domain_config():
    return DomainConfig(id=3, name="example.lv", language="ru")


@pytest.fixture
def email_config():
    """Email configuration with no retry delay."""
    return EmailConfig(
        sender="Example <info@example.lv>",
        use_tls=True,
        max_retries=2,
        retry_backoff_multiplier=2.0,
        retry_initial_delay=0,
    )


@pytest.fixture
def env_config():
    return EnvironmentConfig(
        smtp_host="smtp.test.com",
        smtp_port=587,
        smtp_user="user@test.com",
        smtp_pass="testpass123",
        environment="production",
    )


@pytest.fixture
def mail_assets_dir(tmp_path):
    """Assets directory holding the three inline digest images."""
    image_dir = tmp_path / "assets" / "agent" / "images"
    image_dir.mkdir(parents=True)
    for name in ("logo.png", "logo-fb.png", "logo-vk.png"):
        (image_dir / name).write_bytes(PNG_BYTES)
    return tmp_path / "assets"


@pytest.fixture
def app_config(domain_config, email_config, mail_assets_dir):
    return AppConfig(
        domain=domain_config,
        email=email_config,
        search=SearchConfig(url="http://search.test:9200", max_retries=0, retry_initial_delay=0),
        dispatch=DispatchConfig(concurrency=4),
        mail_assets_dir=mail_assets_dir,
    )


@pytest.fixture
def run_config(domain_config):
    return RunConfig(environment="production", force=False, domain=domain_config)


@pytest.fixture
def catalog():
    """Packaged Russian catalog."""
    return YamlTranslationLoader().load("ru")


@pytest.fixture
def make_subscriber():
    """Factory for Subscriber snapshots with sensible defaults."""

    def _make(**overrides):
        fields = {
            "id": 42,
            "digest_type": DigestType.VACANCIES,
            "email": "reader@example.com",
            "email_confirmed": True,
            "languages": ["ru"],
            "locations": {},
            "professions": {},
            "keywords": "",
        }
        fields.update(overrides)
        return Subscriber(**fields)

    return _make


@pytest.fixture
def test_database(tmp_path):
    """File-backed SQLite database (shared across worker threads)."""
    db_file = tmp_path / "agent_digest_test.db"
    db_url = f"sqlite:///{db_file}"
    init_database(db_url)
    yield db_url
    close_database()


@pytest.fixture
def digest(make_subscriber, catalog, domain_config, mail_assets_dir):
    """Composed digest with two hits for a vacancy subscriber in Riga."""
    from agent_digest.digest.composer import compose_digest
    from agent_digest.domain.models import Hit

    subscriber = make_subscriber(locations={3: "Riga"}, professions={12: "IT"}, keywords="python")
    hits = [
        Hit(id="101", title="Python developer", profession="IT", locations=["Riga"],
            offeror_name="Acme", short_id="a1b2"),
        Hit(id="102", title="Backend <engineer>", locations=[], short_id=None),
    ]
    return compose_digest(
        subscriber, 2, hits, catalog, domain_config, FIXED_NOW.date(), mail_assets_dir
    )
