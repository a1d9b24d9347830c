"""Count agreement for digest subject lines.

Russian nouns take one of three forms after a number:
ONE ("1 новая вакансия"), FEW ("2 новые вакансии") and MANY
("5 новых вакансий"). Vacancy digests follow the standard rule. CV digests
only vary the adjective before the invariant noun "резюме", and their rule
has no teen exception: 11 takes the ONE form.
"""

from enum import Enum

from agent_digest.domain.models import DigestType


class PluralForm(str, Enum):
    """Grammatical number category selected for a count."""

    ONE = "one"
    FEW = "few"
    MANY = "many"


def vacancy_plural_form(count: int) -> PluralForm:
    """Standard three-way rule used for vacancy and universal digests.

    Example:
        >>> [vacancy_plural_form(n).value for n in (1, 2, 5, 11, 21, 111)]
        ['one', 'few', 'many', 'many', 'one', 'many']
    """
    last_digit = count % 10
    last_two = count % 100

    if last_digit == 1 and last_two != 11:
        return PluralForm.ONE
    if last_digit in (2, 3, 4) and not 11 <= last_two <= 19:
        return PluralForm.FEW
    return PluralForm.MANY


def cv_plural_form(count: int) -> PluralForm:
    """Two-way rule used for CV digests (no exception for 11)."""
    if count % 10 == 1:
        return PluralForm.ONE
    return PluralForm.MANY


def plural_form(digest_type: DigestType, count: int) -> PluralForm:
    """Select the plural form for a digest type and count."""
    if digest_type == DigestType.CV:
        return cv_plural_form(count)
    return vacancy_plural_form(count)
