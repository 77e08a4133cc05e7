"""Tests for the query compiler."""

from __future__ import annotations

import pytest

from elquery.core.compiler import ALL_BUCKETS, build_filter, compile_agg, compile_search
from elquery.exceptions import UsageError
from elquery.models.options import normalize_search

# ── Paging & empty input ─────────────────────────────────────────────────────


class TestPaging:
    def test_defaults(self) -> None:
        body = compile_search({})
        assert body == {"from": 0, "size": 25}

    def test_none_options(self) -> None:
        assert compile_search(None) == {"from": 0, "size": 25}

    @pytest.mark.parametrize(
        ("page", "page_size", "expected_from"),
        [(1, 25, 0), (2, 25, 25), (3, 10, 20), (7, 1, 6)],
    )
    def test_from_and_size(self, page: int, page_size: int, expected_from: int) -> None:
        body = compile_search({"page": page, "pageSize": page_size})
        assert body["from"] == expected_from
        assert body["size"] == page_size

    def test_empty_options_have_no_filter_branches(self) -> None:
        body = compile_search({"mustMatch": {}, "shouldRange": None, "page": 2})
        assert "filter" not in body
        assert set(body) == {"from", "size"}

    def test_sort_passed_through(self) -> None:
        sort = [{"age": {"order": "desc"}}, "_score"]
        body = compile_search({"sort": sort})
        assert body["sort"] == sort

    def test_accepts_normalized_options(self) -> None:
        options = normalize_search({"mustMatch": {"name": "Simba"}})
        assert compile_search(options) == compile_search({"mustMatch": {"name": "Simba"}})


# ── Term filters ─────────────────────────────────────────────────────────────


class TestTermFilters:
    def test_scalar_is_lowercased(self) -> None:
        body = compile_search({"mustMatch": {"name": "Simba"}, "page": 1, "pageSize": 25})
        assert body == {
            "from": 0,
            "size": 25,
            "filter": {"bool": {"must": [{"term": {"name": "simba"}}]}},
        }

    def test_lowercasing_is_idempotent(self) -> None:
        once = compile_search({"mustMatch": {"name": "SiMbA"}})
        twice = compile_search({"mustMatch": {"name": "simba"}})
        assert once == twice

    def test_non_string_scalar_unchanged(self) -> None:
        body = compile_search({"mustMatch": {"age": 4, "alive": True}})
        assert body["filter"]["bool"]["must"] == [
            {"term": {"age": 4}},
            {"term": {"alive": True}},
        ]

    def test_sequence_emits_one_term_per_element(self) -> None:
        body = compile_search({"shouldMatch": {"name": ["Simba", "Nala", "Kiara"]}})
        assert body["filter"]["bool"]["should"] == [
            {"term": {"name": "simba"}},
            {"term": {"name": "nala"}},
            {"term": {"name": "kiara"}},
        ]
        assert "must" not in body["filter"]["bool"]

    def test_field_order_is_preserved(self) -> None:
        body = compile_search({"mustMatch": {"zeta": "z", "alpha": "a", "mid": "m"}})
        fields = [next(iter(c["term"])) for c in body["filter"]["bool"]["must"]]
        assert fields == ["zeta", "alpha", "mid"]

    def test_object_value_rejected(self) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_search({"mustMatch": {"name": {"gte": 1}}})
        assert exc_info.value.kind == "mustMatch"
        assert exc_info.value.field == "name"

    def test_null_value_rejected(self) -> None:
        with pytest.raises(UsageError, match="name"):
            compile_search({"mustMatch": {"name": None}})

    @pytest.mark.parametrize("kind", ["mustMatch", "shouldNotMatch", "mustFuzzyMatch", "shouldAllMatch"])
    def test_empty_list_rejected(self, kind: str) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_search({kind: {"name": []}})
        assert exc_info.value.kind == kind
        assert exc_info.value.field == "name"


# ── Array filters ────────────────────────────────────────────────────────────


class TestArrayFilters:
    def test_terms_clause(self) -> None:
        body = compile_search({"mustArray": {"tags": ["a", "b"]}})
        assert body["filter"]["bool"]["must"] == [{"terms": {"tags": ["a", "b"]}}]

    def test_values_kept_verbatim(self) -> None:
        body = compile_search({"shouldArray": {"tags": ["Big", "Cat"]}})
        assert body["filter"]["bool"]["should"] == [{"terms": {"tags": ["Big", "Cat"]}}]

    def test_scalar_rejected(self) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_search({"shouldArray": {"tags": "a"}})
        assert exc_info.value.kind == "shouldArray"
        assert exc_info.value.field == "tags"

    def test_empty_list_rejected(self) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_search({"mustArray": {"tags": []}})
        assert exc_info.value.kind == "mustArray"
        assert exc_info.value.field == "tags"


# ── Range filters ────────────────────────────────────────────────────────────


class TestRangeFilters:
    def test_range_clause(self) -> None:
        body = compile_search({"mustRange": {"age": {"gte": 2, "lte": 8}}})
        assert body["filter"]["bool"]["must"] == [{"range": {"age": {"gte": 2, "lte": 8}}}]

    def test_one_clause_per_field(self) -> None:
        body = compile_search({"shouldRange": {"age": {"gte": 2}, "weight": {"lt": 190}}})
        assert body["filter"]["bool"]["should"] == [
            {"range": {"age": {"gte": 2}}},
            {"range": {"weight": {"lt": 190}}},
        ]

    @pytest.mark.parametrize("value", [5, "5", [1, 2], {}])
    def test_non_object_rejected(self, value: object) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_search({"mustRange": {"age": value}})
        assert exc_info.value.kind == "mustRange"
        assert exc_info.value.field == "age"

    def test_input_not_mutated(self) -> None:
        bounds = {"gte": 2}
        compile_search({"mustRange": {"age": bounds}})
        assert bounds == {"gte": 2}


# ── Fuzzy-match filters ──────────────────────────────────────────────────────


class TestFuzzyFilters:
    def test_scalar_pair(self) -> None:
        body = compile_search({"mustFuzzyMatch": {"name": "Simba"}, "fuzziness": 0.6})
        assert body["filter"]["bool"]["must"] == [
            {
                "bool": {
                    "should": [
                        {"multi_match": {"query": "simba", "fields": ["name"], "boost": 3}},
                        {"multi_match": {"query": "simba", "fields": ["name"], "fuzziness": 0.6, "boost": 1}},
                    ],
                    "minimum_should_match": 1,
                }
            }
        ]

    def test_one_exact_and_one_fuzzy_per_value(self) -> None:
        body = compile_search({"shouldFuzzyMatch": {"name": ["Simba", "Nala"]}, "fuzziness": 1.0})
        groups = body["filter"]["bool"]["should"]
        assert len(groups) == 2
        for group, expected in zip(groups, ["simba", "nala"], strict=True):
            exact = [c for c in group["bool"]["should"] if "fuzziness" not in c["multi_match"]]
            fuzzy = [c for c in group["bool"]["should"] if "fuzziness" in c["multi_match"]]
            assert len(exact) == 1 and len(fuzzy) == 1
            assert exact[0]["multi_match"]["boost"] == 3
            assert fuzzy[0]["multi_match"]["boost"] == 1
            assert fuzzy[0]["multi_match"]["fuzziness"] == 1.0
            assert exact[0]["multi_match"]["query"] == expected

    def test_default_fuzziness_is_zero(self) -> None:
        body = compile_search({"mustFuzzyMatch": {"name": "x"}})
        fuzzy = body["filter"]["bool"]["must"][0]["bool"]["should"][1]
        assert fuzzy["multi_match"]["fuzziness"] == 0.0


# ── Not-match filters ────────────────────────────────────────────────────────


class TestNotMatchFilters:
    def test_scalar_negation(self) -> None:
        body = compile_search({"mustNotMatch": {"name": "Scar"}})
        assert body["filter"]["bool"]["must"] == [
            {"bool": {"must_not": [{"multi_match": {"query": "scar", "fields": ["name"], "boost": 3}}]}}
        ]

    def test_sequence_emits_one_negation_per_value(self) -> None:
        body = compile_search({"shouldNotMatch": {"name": ["Scar", "Zira"]}})
        clauses = body["filter"]["bool"]["should"]
        assert [c["bool"]["must_not"][0]["multi_match"]["query"] for c in clauses] == ["scar", "zira"]
        assert all("fuzziness" not in c["bool"]["must_not"][0]["multi_match"] for c in clauses)


# ── All-field match ──────────────────────────────────────────────────────────


class TestAllMatchFilters:
    def test_one_clause_per_term(self) -> None:
        body = compile_search({"mustAllMatch": {"text": ["hakuna", "matata"]}})
        assert body["filter"]["bool"]["must"] == [
            {"multi_match": {"query": "hakuna", "fields": ["_all"], "zero_terms_query": "all"}},
            {"multi_match": {"query": "matata", "fields": ["_all"], "zero_terms_query": "all"}},
        ]

    def test_custom_fields(self) -> None:
        body = compile_search({"shouldAllMatch": {"q": "circle"}, "fields": ["name", "bio"]})
        assert body["filter"]["bool"]["should"][0]["multi_match"]["fields"] == ["name", "bio"]


# ── Composition ──────────────────────────────────────────────────────────────


class TestComposition:
    def test_kind_order_is_fixed(self) -> None:
        body = compile_search(
            {
                "mustArray": {"tags": ["a"]},
                "mustRange": {"age": {"gte": 1}},
                "mustMatch": {"name": "x"},
            }
        )
        kinds = [next(iter(c)) for c in body["filter"]["bool"]["must"]]
        assert kinds == ["term", "range", "terms"]

    def test_must_and_should_together(self) -> None:
        body = compile_search({"mustMatch": {"pride": "Rock"}, "shouldMatch": {"name": "Simba"}})
        assert body["filter"]["bool"] == {
            "must": [{"term": {"pride": "rock"}}],
            "should": [{"term": {"name": "simba"}}],
        }

    def test_minimum_should_match_attached_to_should(self) -> None:
        body = compile_search({"shouldMatch": {"name": ["a", "b"]}, "minimumShouldMatch": 2})
        assert body["filter"]["bool"]["minimum_should_match"] == 2

    def test_minimum_should_match_ignored_without_should(self) -> None:
        body = compile_search({"mustMatch": {"name": "a"}, "minimumShouldMatch": 2})
        assert "minimum_should_match" not in body["filter"]["bool"]

    def test_post_filter_key(self) -> None:
        body = compile_search({"mustMatch": {"name": "a"}}, filter_key="post_filter")
        assert "filter" not in body
        assert body["post_filter"] == {"bool": {"must": [{"term": {"name": "a"}}]}}

    def test_deterministic(self) -> None:
        options = {"mustMatch": {"b": "1", "a": "2"}, "shouldFuzzyMatch": {"c": ["x", "y"]}}
        assert compile_search(options) == compile_search(options)

    def test_build_filter_none_when_empty(self) -> None:
        assert build_filter(normalize_search({})) is None


# ── Free-text query & id restriction ─────────────────────────────────────────


class TestFreeTextQuery:
    def test_exact_and_fuzzy_pair(self) -> None:
        body = compile_search({"query": "simba", "fields": ["name", "bio"], "fuzziness": 0.5})
        assert body["query"] == {
            "bool": {
                "should": [
                    {
                        "multi_match": {
                            "query": "simba",
                            "fields": ["name", "bio"],
                            "zero_terms_query": "all",
                            "boost": 3,
                        }
                    },
                    {
                        "multi_match": {
                            "query": "simba",
                            "fields": ["name", "bio"],
                            "zero_terms_query": "all",
                            "fuzziness": 0.5,
                            "boost": 1,
                        }
                    },
                ],
                "minimum_should_match": 1,
            }
        }

    def test_default_fields(self) -> None:
        body = compile_search({"query": "*"})
        assert body["query"]["bool"]["should"][0]["multi_match"]["fields"] == ["_all"]

    def test_omitted_without_query(self) -> None:
        assert "query" not in compile_search({"mustMatch": {"name": "a"}})

    def test_combines_with_filter(self) -> None:
        body = compile_search({"query": "king", "mustMatch": {"pride": "Rock"}}, filter_key="post_filter")
        assert "query" in body
        assert body["post_filter"] == {"bool": {"must": [{"term": {"pride": "rock"}}]}}


class TestIdRestriction:
    def test_ids_terms_clause(self) -> None:
        body = compile_search({"multiValueSearchTerms": ["a1", "B2"]})
        assert body["filter"] == {"bool": {"must": [{"terms": {"_id": ["a1", "B2"]}}]}}

    def test_appended_after_filter_kinds(self) -> None:
        body = compile_search({"multiValueSearchTerms": ["a1"], "mustArray": {"tags": ["x"]}})
        assert body["filter"]["bool"]["must"] == [
            {"terms": {"tags": ["x"]}},
            {"terms": {"_id": ["a1"]}},
        ]

    def test_scalar_rejected(self) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_search({"multiValueSearchTerms": "a1"})
        assert exc_info.value.kind == "multiValueSearchTerms"


# ── Aggregation ──────────────────────────────────────────────────────────────


class TestCompileAgg:
    def test_unwrapped_without_filters(self) -> None:
        body = compile_agg({"groupBy": "pride"})
        assert body == {
            "from": 0,
            "size": 25,
            "aggs": {"grouped": {"terms": {"field": "pride", "size": ALL_BUCKETS}}},
        }

    def test_wrapped_with_filters(self) -> None:
        body = compile_agg({"groupBy": "pride", "mustMatch": {"species": "Lion"}, "page": 2, "pageSize": 10})
        assert body["from"] == 10
        assert body["size"] == 10
        filtered = body["aggs"]["filtered"]
        assert filtered["filter"] == {"bool": {"must": [{"term": {"species": "lion"}}]}}
        assert filtered["aggs"] == {"grouped": {"terms": {"field": "pride", "size": ALL_BUCKETS}}}

    def test_should_range_filter(self) -> None:
        body = compile_agg({"groupBy": "pride", "shouldRange": {"age": {"lt": 3}}})
        assert body["aggs"]["filtered"]["filter"]["bool"]["should"] == [{"range": {"age": {"lt": 3}}}]

    def test_group_by_required(self) -> None:
        with pytest.raises(UsageError) as exc_info:
            compile_agg({"mustMatch": {"name": "x"}})
        assert exc_info.value.kind == "groupBy"

    def test_search_only_kinds_ignored(self) -> None:
        body = compile_agg({"groupBy": "pride", "mustArray": {"tags": ["a"]}})
        assert "filtered" not in body["aggs"]
