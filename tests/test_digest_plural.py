"""Tests for plural form selection."""

import pytest

from agent_digest.digest.plural import PluralForm, cv_plural_form, plural_form, vacancy_plural_form
from agent_digest.domain.models import DigestType


@pytest.mark.parametrize(
    "count,expected",
    [
        (1, PluralForm.ONE),
        (2, PluralForm.FEW),
        (4, PluralForm.FEW),
        (5, PluralForm.MANY),
        (11, PluralForm.MANY),
        (12, PluralForm.MANY),
        (14, PluralForm.MANY),
        (21, PluralForm.ONE),
        (22, PluralForm.FEW),
        (60, PluralForm.MANY),
        (101, PluralForm.ONE),
        (111, PluralForm.MANY),
    ],
)
def test_vacancy_rule(count, expected):
    assert vacancy_plural_form(count) == expected


@pytest.mark.parametrize(
    "count,expected",
    [
        (1, PluralForm.ONE),
        (11, PluralForm.ONE),
        (21, PluralForm.ONE),
        (2, PluralForm.MANY),
        (5, PluralForm.MANY),
        (12, PluralForm.MANY),
    ],
)
def test_cv_rule_has_no_teen_exception(count, expected):
    assert cv_plural_form(count) == expected


def test_universal_uses_vacancy_rule():
    for count in (1, 2, 5, 11, 21, 111):
        assert plural_form(DigestType.UNIVERSAL, count) == vacancy_plural_form(count)


def test_dispatch_by_digest_type():
    assert plural_form(DigestType.CV, 11) == PluralForm.ONE
    assert plural_form(DigestType.VACANCIES, 11) == PluralForm.MANY
