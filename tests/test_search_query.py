"""Tests for query compilation."""

from datetime import datetime, timezone

import pytest

from agent_digest.domain.models import DigestType
from agent_digest.search.query import (
    KEYWORD_FIELDS,
    STORED_FIELDS,
    SearchRequest,
    compile_query,
    type_codes_for,
)

NOW = datetime(2024, 3, 15, 7, 0, 0, tzinfo=timezone.utc)


def bool_query(request: SearchRequest):
    return request.to_body()["query"]["bool"]


class TestFilters:
    """Mandatory filters and listing types."""

    def test_base_filters(self, make_subscriber):
        request = compile_query(make_subscriber(), domain_id=3, now=NOW)

        filters = bool_query(request)["filter"]
        assert {"term": {"domainId": 3}} in filters
        assert {"exists": {"field": "profession"}} in filters
        assert {"term": {"isPublished": True}} in filters
        assert {"range": {"createdAt": {"gte": "2024-03-14T07:00:00Z"}}} in filters

    @pytest.mark.parametrize(
        "digest_type,codes",
        [
            (DigestType.VACANCIES, [0, 1]),
            (DigestType.CV, [2]),
            (DigestType.UNIVERSAL, [0, 1]),
        ],
    )
    def test_type_filter(self, make_subscriber, digest_type, codes):
        request = compile_query(make_subscriber(digest_type=digest_type), 3, NOW)

        assert {"terms": {"type": codes}} in bool_query(request)["filter"]
        assert list(type_codes_for(digest_type)) == codes

    def test_naive_now_is_treated_as_utc(self, make_subscriber):
        request = compile_query(make_subscriber(), 3, datetime(2024, 3, 15, 7, 0, 0))

        assert request.created_from == datetime(2024, 3, 14, 7, 0, 0, tzinfo=timezone.utc)


class TestShouldGroups:
    """Location and profession groups and minimum_should_match."""

    def test_no_criteria(self, make_subscriber):
        query = bool_query(compile_query(make_subscriber(), 3, NOW))

        assert query["minimum_should_match"] == 0
        assert "should" not in query
        assert "must" not in query

    def test_locations_only(self, make_subscriber):
        subscriber = make_subscriber(locations={3: "Riga", 7: "Tallinn"})
        query = bool_query(compile_query(subscriber, 3, NOW))

        assert query["minimum_should_match"] == 1
        assert query["should"] == [
            {
                "nested": {
                    "path": "locations",
                    "query": {
                        "bool": {
                            "should": [
                                {"match": {"locations.id": "3"}},
                                {"match": {"locations.id": "7"}},
                            ],
                            "minimum_should_match": 1,
                        }
                    },
                }
            }
        ]

    def test_professions_only(self, make_subscriber):
        subscriber = make_subscriber(professions={12: "IT", 15: "Design"})
        query = bool_query(compile_query(subscriber, 3, NOW))

        assert query["minimum_should_match"] == 1
        assert query["should"] == [
            {"term": {"professionId": "12"}},
            {"term": {"professionId": "15"}},
        ]

    def test_locations_and_professions(self, make_subscriber):
        subscriber = make_subscriber(locations={3: "Riga"}, professions={12: "IT"})
        query = bool_query(compile_query(subscriber, 3, NOW))

        assert query["minimum_should_match"] == 2
        assert len(query["should"]) == 2
        assert "nested" in query["should"][0]
        assert query["should"][1] == {"term": {"professionId": "12"}}

    def test_worldwide_only_matches_listings_without_location(self, make_subscriber):
        subscriber = make_subscriber(locations={1: "Worldwide"})
        query = bool_query(compile_query(subscriber, 3, NOW))

        assert query["minimum_should_match"] == 1
        assert query["should"] == [{"bool": {"must_not": {"exists": {"field": "location"}}}}]

    def test_worldwide_is_dropped_from_regional_group(self, make_subscriber):
        subscriber = make_subscriber(locations={1: "Worldwide", 5: "Jelgava"})
        request = compile_query(subscriber, 3, NOW)

        assert request.location_ids == ("5",)
        nested = bool_query(request)["should"][0]["nested"]
        assert nested["query"]["bool"]["should"] == [{"match": {"locations.id": "5"}}]


class TestKeywordsAndBody:
    """Keyword clause and fixed body parts."""

    def test_keyword_must_clause(self, make_subscriber):
        query = bool_query(compile_query(make_subscriber(keywords="python senior"), 3, NOW))

        assert query["must"] == {
            "multi_match": {
                "query": "python senior",
                "type": "cross_fields",
                "fields": list(KEYWORD_FIELDS),
                "operator": "and",
            }
        }
        assert KEYWORD_FIELDS == ("location", "profession", "title", "content", "offerorName")

    def test_body_paging_sort_and_stored_fields(self, make_subscriber):
        body = compile_query(make_subscriber(), 3, NOW).to_body()

        assert body["from"] == 0
        assert body["size"] == 60
        assert body["stored_fields"] == list(STORED_FIELDS)
        assert body["sort"] == [
            {"rating": {"order": "desc"}},
            {"days": {"order": "desc"}},
            {"createdAt": {"order": "desc"}},
        ]

    def test_request_is_immutable(self, make_subscriber):
        request = compile_query(make_subscriber(), 3, NOW)

        with pytest.raises(AttributeError):
            request.keywords = "changed"
