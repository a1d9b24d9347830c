"""Digest composition: translations, plural rules, links and subjects."""

from .composer import build_subject, compose_digest
from .links import build_show_all_link
from .plural import PluralForm, plural_form
from .translations import TranslationCatalog, TranslationLoader, YamlTranslationLoader

__all__ = [
    "PluralForm",
    "TranslationCatalog",
    "TranslationLoader",
    "YamlTranslationLoader",
    "build_show_all_link",
    "build_subject",
    "compose_digest",
    "plural_form",
]
