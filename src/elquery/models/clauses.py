"""Query clause models: immutable leaf conditions of a compiled query.

Each clause knows how to render itself as a backend query-DSL fragment via
``to_query()``.  ``AnyOf`` and ``NoneOf`` compose other clauses into a
nested boolean group.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

EXACT_BOOST = 3
FUZZY_BOOST = 1


class Clause(BaseModel, ABC):
    """Base class for all query clauses."""

    model_config = ConfigDict(frozen=True)

    kind: str

    @abstractmethod
    def to_query(self) -> dict[str, Any]:
        """Render this clause as a query-DSL fragment."""


class Term(Clause):
    """Exact match of a single value on a field."""

    kind: Literal["term"] = "term"
    field: str
    value: Any

    def to_query(self) -> dict[str, Any]:
        return {"term": {self.field: self.value}}


class Terms(Clause):
    """Match any of several values on a field."""

    kind: Literal["terms"] = "terms"
    field: str
    values: tuple[Any, ...]

    def to_query(self) -> dict[str, Any]:
        return {"terms": {self.field: list(self.values)}}


class Range(Clause):
    """Bounded range on a field, e.g. ``{"gte": 1, "lte": 5}``."""

    kind: Literal["range"] = "range"
    field: str
    bounds: dict[str, Any]

    def to_query(self) -> dict[str, Any]:
        return {"range": {self.field: dict(self.bounds)}}


class MultiMatchExact(Clause):
    """Analyzed, non-fuzzy match on a field."""

    kind: Literal["multi_match_exact"] = "multi_match_exact"
    field: str
    value: Any
    boost: int = EXACT_BOOST

    def to_query(self) -> dict[str, Any]:
        return {
            "multi_match": {
                "query": self.value,
                "fields": [self.field],
                "boost": self.boost,
            }
        }


class MultiMatchFuzzy(Clause):
    """Approximate match on a field within ``fuzziness`` edits."""

    kind: Literal["multi_match_fuzzy"] = "multi_match_fuzzy"
    field: str
    value: Any
    fuzziness: float = 0.0
    boost: int = FUZZY_BOOST

    def to_query(self) -> dict[str, Any]:
        return {
            "multi_match": {
                "query": self.value,
                "fields": [self.field],
                "fuzziness": self.fuzziness,
                "boost": self.boost,
            }
        }


class MatchAll(Clause):
    """Free-text match across every indexed field."""

    kind: Literal["match_all"] = "match_all"
    value: Any
    fields: tuple[str, ...] = ("_all",)

    def to_query(self) -> dict[str, Any]:
        return {
            "multi_match": {
                "query": self.value,
                "fields": list(self.fields),
                # analyzer-stripped queries match everything
                "zero_terms_query": "all",
            }
        }


class AnyOf(Clause):
    """At least ``minimum`` of the nested clauses must match."""

    kind: Literal["any_of"] = "any_of"
    clauses: tuple[Clause, ...] = Field(min_length=1)
    minimum: int = 1

    def to_query(self) -> dict[str, Any]:
        return {
            "bool": {
                "should": [clause.to_query() for clause in self.clauses],
                "minimum_should_match": self.minimum,
            }
        }


class NoneOf(Clause):
    """None of the nested clauses may match."""

    kind: Literal["none_of"] = "none_of"
    clauses: tuple[Clause, ...] = Field(min_length=1)

    def to_query(self) -> dict[str, Any]:
        return {"bool": {"must_not": [clause.to_query() for clause in self.clauses]}}


class TextSearch(Clause):
    """Free-text query over several fields.

    Renders an exact and a fuzzy ``multi_match`` under ``bool.should``; the
    exact one carries the higher boost so exact hits rank first.
    """

    kind: Literal["text_search"] = "text_search"
    value: str
    fields: tuple[str, ...] = ("_all",)
    fuzziness: float = 0.0

    def to_query(self) -> dict[str, Any]:
        base = {"query": self.value, "fields": list(self.fields), "zero_terms_query": "all"}
        return {
            "bool": {
                "should": [
                    {"multi_match": {**base, "boost": EXACT_BOOST}},
                    {"multi_match": {**base, "fuzziness": self.fuzziness, "boost": FUZZY_BOOST}},
                ],
                "minimum_should_match": 1,
            }
        }
