"""Translation catalogs for digest texts.

A catalog holds the strings of one language: the mailing section handed to
the mail template (header variants and other labels), the subject phrases and
the offers-count nouns for every digest type and plural form, and the word
placed between the count phrase and the date.

Catalogs are YAML files named ``mail.<language>.yaml``:

    mailing:
      header: ...
      headerVacancies: ...
      headerCV: ...
    period: за
    subjects:
      vacancies: {one: новая вакансия, few: новые вакансии, many: новых вакансий}
      cv: {one: новое резюме, many: новых резюме}
      universal: {...}
    offersCount:
      vacancies: {one: вакансия, few: вакансии, many: вакансий}
      ...
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

import yaml

from agent_digest.config.exceptions import ConfigurationError
from agent_digest.domain.models import DigestType
from agent_digest.logging import get_logger

from .plural import PluralForm

logger = get_logger(__name__, component="translations")

PACKAGED_LOCALE_DIR = Path(__file__).parent / "locale"

REQUIRED_MAILING_KEYS = (
    "header",
    "headerVacancies",
    "headerCV",
    "showAll",
    "unsubscribe",
    "footer",
)

# Plural forms each digest type's rule can select
REQUIRED_FORMS = {
    DigestType.VACANCIES: (PluralForm.ONE, PluralForm.FEW, PluralForm.MANY),
    DigestType.CV: (PluralForm.ONE, PluralForm.MANY),
    DigestType.UNIVERSAL: (PluralForm.ONE, PluralForm.FEW, PluralForm.MANY),
}

FormTable = Dict[DigestType, Dict[PluralForm, str]]


@dataclass(frozen=True)
class TranslationCatalog:
    """Digest strings for one language. Read-only once loaded."""

    language: str
    mailing: Mapping[str, Any]
    period: str
    subjects: FormTable = field(default_factory=dict)
    offers_count: FormTable = field(default_factory=dict)

    def header_for(self, digest_type: DigestType) -> str:
        """Header variant: the CV header for CV digests, the vacancy header otherwise."""
        if digest_type == DigestType.CV:
            return self.mailing["headerCV"]
        return self.mailing["headerVacancies"]

    def subject_phrase(self, digest_type: DigestType, form: PluralForm) -> str:
        return self.subjects[digest_type][form]

    def offers_noun(self, digest_type: DigestType, form: PluralForm) -> str:
        return self.offers_count[digest_type][form]

    @classmethod
    def from_mapping(
        cls, language: str, data: Mapping[str, Any], source: str = "<mapping>"
    ) -> "TranslationCatalog":
        """Validate a parsed catalog.

        Raises:
            ConfigurationError: If required keys or plural forms are missing
        """
        errors = []

        mailing = data.get("mailing")
        if not isinstance(mailing, dict):
            errors.append("Missing 'mailing' section")
            mailing = {}
        for key in REQUIRED_MAILING_KEYS:
            if not mailing.get(key):
                errors.append(f"Missing mailing.{key}")

        period = data.get("period")
        if not period:
            errors.append("Missing 'period'")

        subjects = _parse_form_table(data.get("subjects"), "subjects", errors)
        offers_count = _parse_form_table(data.get("offersCount"), "offersCount", errors)

        if errors:
            raise ConfigurationError(
                f"Invalid translation catalog {source}",
                errors=errors,
                suggestions=[f"Compare {source} with the packaged mail.ru.yaml catalog"],
            )

        return cls(
            language=language,
            mailing=dict(mailing),
            period=str(period),
            subjects=subjects,
            offers_count=offers_count,
        )


def _parse_form_table(section: Any, name: str, errors: list) -> FormTable:
    """Parse a digest type -> plural form -> string section, collecting errors."""
    table: FormTable = {}

    if not isinstance(section, dict):
        errors.append(f"Missing '{name}' section")
        return table

    for digest_type, forms in REQUIRED_FORMS.items():
        entry = section.get(digest_type.value)
        if not isinstance(entry, dict):
            errors.append(f"Missing {name}.{digest_type.value}")
            continue

        table[digest_type] = {}
        for form in forms:
            value = entry.get(form.value)
            if not value:
                errors.append(f"Missing {name}.{digest_type.value}.{form.value}")
                continue
            table[digest_type][form] = str(value)

    return table


class TranslationLoader(Protocol):
    """Loads the catalog for a language code."""

    def load(self, language: str) -> TranslationCatalog:
        ...


class YamlTranslationLoader:
    """Loads ``mail.<language>.yaml`` catalogs from a directory."""

    def __init__(self, locale_dir: Optional[Path] = None):
        """
        Args:
            locale_dir: Directory with catalogs (packaged catalogs if None)
        """
        self.locale_dir = Path(locale_dir) if locale_dir else PACKAGED_LOCALE_DIR

    def path_for(self, language: str) -> Path:
        return self.locale_dir / f"mail.{language}.yaml"

    def load(self, language: str) -> TranslationCatalog:
        """Load and validate the catalog for a language.

        Raises:
            ConfigurationError: If the file is missing, unreadable or incomplete
        """
        path = self.path_for(language)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Translation catalog not found for language '{language}': {path}",
                suggestions=[
                    f"Create {path.name} in {self.locale_dir}",
                    "Check domain.language and locale_dir in the config file",
                ],
            )
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to read translation catalog {path}: {e}",
                suggestions=["Check YAML syntax and file permissions"],
            )

        if not isinstance(data, dict):
            raise ConfigurationError(f"Translation catalog {path} is empty or not a mapping")

        catalog = TranslationCatalog.from_mapping(language, data, source=str(path))

        logger.info(
            f"Loaded translation catalog for '{language}'",
            extra={"event": "translations.loaded", "language": language, "path": str(path)},
        )

        return catalog
