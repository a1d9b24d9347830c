"""Query compilation from subscriber criteria to search requests.

This module turns a Subscriber snapshot into an immutable SearchRequest:
1. Mandatory filters (domain, profession present, published, last 24 hours)
2. Listing type filter derived from the digest type
3. Location and profession should-groups, each counted once against
   minimum_should_match so that groups combine with AND while the clauses
   inside a group combine with OR
4. Optional cross-field keyword match

SearchRequest.to_body() renders the JSON request body.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from agent_digest.domain.models import (
    CV_TYPE_CODES,
    MAX_DIGEST_ITEMS,
    VACANCY_TYPE_CODES,
    DigestType,
    Subscriber,
)
from agent_digest.utils.timestamps import ensure_utc, format_timestamp

LOOKBACK = timedelta(days=1)

STORED_FIELDS: Tuple[str, ...] = (
    "title",
    "profession",
    "location",
    "offerorName",
    "rating",
    "days",
    "pricing_type",
    "shortId",
)

KEYWORD_FIELDS: Tuple[str, ...] = (
    "location",
    "profession",
    "title",
    "content",
    "offerorName",
)

SORT_FIELDS: Tuple[str, ...] = ("rating", "days", "createdAt")


@dataclass(frozen=True)
class SearchRequest:
    """Immutable search request for one subscriber.

    Attributes:
        domain_id: Domain the listings must belong to
        type_codes: Accepted listing type codes
        created_from: Inclusive lower bound for createdAt (UTC)
        location_ids: Non-worldwide location ids for the location group
        has_location_group: Whether the location group was added
        profession_ids: Profession ids (as strings) for the profession group
        keywords: Free-text query; empty means no must clause
        minimum_should_match: Number of should-groups that were added
        offset: Paging offset
        limit: Page size
    """

    domain_id: int
    type_codes: Tuple[int, ...]
    created_from: datetime
    location_ids: Tuple[str, ...] = ()
    has_location_group: bool = False
    profession_ids: Tuple[str, ...] = ()
    keywords: str = ""
    minimum_should_match: int = 0
    offset: int = 0
    limit: int = MAX_DIGEST_ITEMS

    def filters(self) -> List[Dict[str, Any]]:
        """Filter clauses every hit must satisfy."""
        return [
            {"term": {"domainId": self.domain_id}},
            {"exists": {"field": "profession"}},
            {"term": {"isPublished": True}},
            {"range": {"createdAt": {"gte": format_timestamp(self.created_from)}}},
            {"terms": {"type": list(self.type_codes)}},
        ]

    def should_clauses(self) -> List[Dict[str, Any]]:
        """Should clauses: the location group first, then one per profession."""
        clauses: List[Dict[str, Any]] = []

        if self.has_location_group:
            if self.location_ids:
                clauses.append(
                    {
                        "nested": {
                            "path": "locations",
                            "query": {
                                "bool": {
                                    "should": [
                                        {"match": {"locations.id": location_id}}
                                        for location_id in self.location_ids
                                    ],
                                    "minimum_should_match": 1,
                                }
                            },
                        }
                    }
                )
            else:
                # Worldwide-only subscribers match listings without a location
                clauses.append(
                    {"bool": {"must_not": {"exists": {"field": "location"}}}}
                )

        for profession_id in self.profession_ids:
            clauses.append({"term": {"professionId": profession_id}})

        return clauses

    def must_clause(self) -> Optional[Dict[str, Any]]:
        """Keyword clause, or None when the subscriber has no keywords."""
        if not self.keywords:
            return None

        return {
            "multi_match": {
                "query": self.keywords,
                "type": "cross_fields",
                "fields": list(KEYWORD_FIELDS),
                "operator": "and",
            }
        }

    def query(self) -> Dict[str, Any]:
        """The bool query."""
        bool_query: Dict[str, Any] = {
            "filter": self.filters(),
            "minimum_should_match": self.minimum_should_match,
        }

        should = self.should_clauses()
        if should:
            bool_query["should"] = should

        must = self.must_clause()
        if must is not None:
            bool_query["must"] = must

        return {"bool": bool_query}

    def to_body(self) -> Dict[str, Any]:
        """Full JSON body for the _search endpoint."""
        return {
            "query": self.query(),
            "stored_fields": list(STORED_FIELDS),
            "sort": [{field: {"order": "desc"}} for field in SORT_FIELDS],
            "from": self.offset,
            "size": self.limit,
        }


def type_codes_for(digest_type: DigestType) -> Tuple[int, ...]:
    """Listing type codes for a digest type.

    Universal agents fall back to the vacancy codes.
    """
    if digest_type == DigestType.CV:
        return CV_TYPE_CODES
    return VACANCY_TYPE_CODES


def compile_query(subscriber: Subscriber, domain_id: int, now: datetime) -> SearchRequest:
    """Compile a subscriber's criteria into a SearchRequest.

    Args:
        subscriber: Subscriber snapshot
        domain_id: Active domain id
        now: Reference time; listings created in the preceding 24 hours match

    Returns:
        SearchRequest with minimum_should_match equal to the number of
        should-groups added (0, 1 or 2)
    """
    minimum_should_match = 0

    has_location_group = False
    location_ids: Tuple[str, ...] = ()
    if subscriber.locations:
        location_ids = tuple(str(location_id) for location_id in subscriber.regional_locations())
        has_location_group = True
        minimum_should_match += 1

    profession_ids: Tuple[str, ...] = ()
    if subscriber.professions:
        profession_ids = tuple(str(profession_id) for profession_id in subscriber.professions)
        minimum_should_match += 1

    return SearchRequest(
        domain_id=domain_id,
        type_codes=type_codes_for(subscriber.digest_type),
        created_from=ensure_utc(now) - LOOKBACK,
        location_ids=location_ids,
        has_location_group=has_location_group,
        profession_ids=profession_ids,
        keywords=subscriber.keywords,
        minimum_should_match=minimum_should_match,
    )
