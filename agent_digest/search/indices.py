"""Search index target selection from subscriber languages."""

from typing import Sequence

DEFAULT_INDEX_PREFIX = "offers"


def select_indices(languages: Sequence[str], prefix: str = DEFAULT_INDEX_PREFIX) -> str:
    """Build the index target for a subscriber's content languages.

    Args:
        languages: Ordered language codes (assumed distinct)
        prefix: Listing index name prefix

    Returns:
        "<prefix>-*" when no languages are given, otherwise the
        comma-joined "<prefix>-<code>" names in input order

    Example:
        >>> select_indices(["en", "ru"])
        'offers-en,offers-ru'
        >>> select_indices([])
        'offers-*'
    """
    if not languages:
        return f"{prefix}-*"

    return ",".join(f"{prefix}-{code}" for code in languages)
