"""Search query compilation, index selection and the HTTP search gateway.

Usage:
    from agent_digest.search import SearchGateway, compile_query, select_indices
    request = compile_query(subscriber, domain_id, now)
    result = gateway.execute(select_indices(subscriber.languages, prefix), request)
"""

from .exceptions import SearchUnavailable
from .gateway import SearchGateway
from .indices import select_indices
from .query import SearchRequest, compile_query

__all__ = [
    "SearchGateway",
    "SearchRequest",
    "SearchUnavailable",
    "compile_query",
    "select_indices",
]
