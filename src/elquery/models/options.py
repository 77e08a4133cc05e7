"""Search and aggregation option models, and the normalizer that fills defaults.

Callers pass loosely-shaped mappings using camelCase keys (``mustMatch``,
``pageSize``, ...).  ``normalize_search`` / ``normalize_agg`` turn them into
frozen, fully-populated option records.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from elquery.exceptions import UsageError

FieldClauses = dict[str, Any]
"""Ordered mapping of field name to clause value for one filter kind."""


class _Options(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    fuzziness: float = Field(default=0.0, ge=0, description="Edit-distance tolerance for fuzzy matches")
    page_size: int = Field(default=25, ge=1, description="Hits per page")
    page: int = Field(default=1, ge=1, description="1-based page number")

    @property
    def offset(self) -> int:
        """Index of the first hit on the current page."""
        return (self.page - 1) * self.page_size


class SearchOptions(_Options):
    """Fully-populated search options.

    Every filter kind maps field names to clause values and is either
    ``None`` or an insertion-ordered dict.
    """

    must_match: FieldClauses | None = None
    should_match: FieldClauses | None = None
    must_not_match: FieldClauses | None = None
    should_not_match: FieldClauses | None = None
    must_fuzzy_match: FieldClauses | None = None
    should_fuzzy_match: FieldClauses | None = None
    must_all_match: FieldClauses | None = None
    should_all_match: FieldClauses | None = None
    must_range: FieldClauses | None = None
    should_range: FieldClauses | None = None
    must_array: FieldClauses | None = None
    should_array: FieldClauses | None = None

    query: str | None = Field(default=None, description="Free-text query run over ``fields``; omitted when unset")
    multi_value_search_terms: list[Any] | None = Field(
        default=None,
        description="Document ids to restrict the search to",
    )
    sort: Any = Field(default=None, description="Backend-native sort spec, passed through")
    fields: list[str] = Field(
        default_factory=lambda: ["_all"],
        description="Fields searched by the free-text query and all-field matches",
    )
    minimum_should_match: int | str | None = Field(
        default=None,
        description="Minimum number of should clauses that must match (omitted when unset)",
    )


class AggOptions(_Options):
    """Fully-populated aggregation options."""

    must_match: FieldClauses | None = None
    should_match: FieldClauses | None = None
    must_fuzzy_match: FieldClauses | None = None
    should_fuzzy_match: FieldClauses | None = None
    must_range: FieldClauses | None = None
    should_range: FieldClauses | None = None

    group_by: str | None = Field(default=None, description="Field whose values define the buckets")


_O = TypeVar("_O", bound=_Options)


def _normalize(model: type[_O], raw: Mapping[str, Any] | None) -> _O:
    if raw is None:
        return model()
    if not isinstance(raw, Mapping):
        raise UsageError(f"options must be a mapping, got {type(raw).__name__}")

    values: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        key = info.alias or name
        value = raw.get(key) or raw.get(name)
        # Falsy values (None, 0, "", {}) fall back to the default.
        if value:
            values[name] = value

    try:
        return model.model_validate(values)
    except ValidationError as e:
        error = e.errors()[0]
        name = str(error["loc"][0]) if error["loc"] else None
        key = model.model_fields[name].alias if name in model.model_fields else name
        raise UsageError(f"invalid value for option '{key}': {error['msg']}", kind=key) from e


def normalize_search(raw: Mapping[str, Any] | None) -> SearchOptions:
    """Merge user-supplied search options with defaults.

    Unknown keys are ignored and ``raw`` is left untouched.

    Raises:
        UsageError: If ``raw`` is not a mapping or a recognized key has the
            wrong type.
    """
    return _normalize(SearchOptions, raw)


def normalize_agg(raw: Mapping[str, Any] | None) -> AggOptions:
    """Merge user-supplied aggregation options with defaults."""
    return _normalize(AggOptions, raw)
