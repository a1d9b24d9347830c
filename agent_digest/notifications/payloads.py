"""Template context for digest emails.

Starts from Digest.template_context() and adds absolute URLs so templates
never assemble links themselves.
"""

from typing import Any, Dict, Optional
from urllib.parse import urlencode

from agent_digest.domain.models import Digest

UNSUBSCRIBE_PATH = "/agents/unsubscribe"
OFFER_PATH = "/offer/"


def site_url(domain: str, path: str) -> str:
    """Absolute https URL on the digest's domain."""
    if not path.startswith("/"):
        path = "/" + path
    return f"https://{domain}{path}"


def offer_url(domain: str, short_id: Optional[str]) -> Optional[str]:
    if not short_id:
        return None
    return site_url(domain, OFFER_PATH + short_id)


def build_digest_context(digest: Digest) -> Dict[str, Any]:
    """Build the template context for one digest.

    Returns:
        Digest.template_context() plus:
        - showAllUrl: absolute "show all" link
        - unsubscribeUrl: absolute unsubscribe link carrying email and code
        - offers[*].url: absolute listing link (None without a short id)
    """
    context = digest.template_context()

    for offer in context["offers"]:
        offer["url"] = offer_url(digest.domain, offer.get("short_id"))

    context["showAllUrl"] = site_url(digest.domain, digest.show_all)
    context["unsubscribeUrl"] = site_url(
        digest.domain, UNSUBSCRIBE_PATH + "?" + urlencode(digest.unsubscribe)
    )

    return context
