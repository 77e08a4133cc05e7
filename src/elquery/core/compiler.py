"""Query compiler: turns normalized options into a backend query document.

Filter kinds are visited in a fixed order (match, not-match, fuzzy-match,
all-match, range, array; ``must`` before ``should``), and fields within a
kind in mapping insertion order, so the same options always compile to the
same document.

Example::

    >>> compile_search({"mustMatch": {"name": "Simba"}})
    {'from': 0, 'size': 25, 'filter': {'bool': {'must': [{'term': {'name': 'simba'}}]}}}
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Literal

from elquery.exceptions import UsageError
from elquery.models.clauses import (
    AnyOf,
    Clause,
    MatchAll,
    MultiMatchExact,
    MultiMatchFuzzy,
    NoneOf,
    Range,
    Term,
    Terms,
    TextSearch,
)
from elquery.models.options import AggOptions, SearchOptions, normalize_agg, normalize_search

logger = logging.getLogger(__name__)

AGG_NAME = "grouped"
FILTER_AGG_NAME = "filtered"
# Largest bucket count the backend accepts; effectively "all buckets".
ALL_BUCKETS = 2**31 - 1
ID_FIELD = "_id"

FilterKey = Literal["filter", "post_filter"]
ClauseBuilder = Callable[[str, str, Any, "SearchOptions | AggOptions"], list[Clause]]


# ── Clause builders ──────────────────────────────────────────────────────────


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _lower(value: Any) -> Any:
    """Lower-case strings; terms are indexed with a lowercase analyzer."""
    return value.lower() if isinstance(value, str) else value


def _scalar_values(kind: str, field: str, value: Any) -> list[Any]:
    """Return ``value`` as a list of scalars, rejecting objects, nulls and empty lists."""
    values = list(value) if _is_sequence(value) else [value]
    if not values:
        raise UsageError(f"'{kind}' got an empty list for field '{field}'", kind=kind, field=field)
    for item in values:
        if item is None or isinstance(item, Mapping) or _is_sequence(item):
            raise UsageError(
                f"'{kind}' expects a scalar or a list of scalars for field '{field}', got {item!r}",
                kind=kind,
                field=field,
            )
    return values


def _build_term_clauses(kind: str, field: str, value: Any, options: Any) -> list[Clause]:
    return [Term(field=field, value=_lower(item)) for item in _scalar_values(kind, field, value)]


def _build_not_match_clauses(kind: str, field: str, value: Any, options: Any) -> list[Clause]:
    return [
        NoneOf(clauses=(MultiMatchExact(field=field, value=_lower(item)),))
        for item in _scalar_values(kind, field, value)
    ]


def _build_fuzzy_clauses(kind: str, field: str, value: Any, options: Any) -> list[Clause]:
    clauses: list[Clause] = []
    for item in _scalar_values(kind, field, value):
        item = _lower(item)
        clauses.append(
            AnyOf(
                clauses=(
                    MultiMatchExact(field=field, value=item),
                    MultiMatchFuzzy(field=field, value=item, fuzziness=options.fuzziness),
                )
            )
        )
    return clauses


def _build_all_match_clauses(kind: str, field: str, value: Any, options: Any) -> list[Clause]:
    fields = tuple(getattr(options, "fields", ("_all",)))
    return [MatchAll(value=item, fields=fields) for item in _scalar_values(kind, field, value)]


def _build_range_clauses(kind: str, field: str, value: Any, options: Any) -> list[Clause]:
    if not isinstance(value, Mapping) or not value:
        raise UsageError(
            f"'{kind}' expects an object of bounds (e.g. gte/lte) for field '{field}', got {value!r}",
            kind=kind,
            field=field,
        )
    return [Range(field=field, bounds=dict(value))]


def _build_array_clauses(kind: str, field: str, value: Any, options: Any) -> list[Clause]:
    if not _is_sequence(value) or not value:
        raise UsageError(
            f"'{kind}' expects a non-empty list of values for field '{field}', got {value!r}",
            kind=kind,
            field=field,
        )
    return [Terms(field=field, values=tuple(value))]


_FILTER_KINDS: tuple[tuple[str, str, ClauseBuilder], ...] = (
    ("match", "Match", _build_term_clauses),
    ("not_match", "NotMatch", _build_not_match_clauses),
    ("fuzzy_match", "FuzzyMatch", _build_fuzzy_clauses),
    ("all_match", "AllMatch", _build_all_match_clauses),
    ("range", "Range", _build_range_clauses),
    ("array", "Array", _build_array_clauses),
)


# ── Assembly ─────────────────────────────────────────────────────────────────


def collect_clauses(options: SearchOptions | AggOptions) -> tuple[list[Clause], list[Clause]]:
    """Build the ``must`` and ``should`` clause lists for *options*.

    An ``_id`` terms clause for ``multiValueSearchTerms`` goes last in ``must``.

    Raises:
        UsageError: If a field value has the wrong shape for its filter kind.
    """
    must: list[Clause] = []
    should: list[Clause] = []

    for attr, label, builder in _FILTER_KINDS:
        for occur, target in (("must", must), ("should", should)):
            clauses_by_field = getattr(options, f"{occur}_{attr}", None)
            if not clauses_by_field:
                continue
            kind = f"{occur}{label}"
            for field, value in clauses_by_field.items():
                target.extend(builder(kind, field, value, options))

    ids = getattr(options, "multi_value_search_terms", None)
    if ids:
        must.append(Terms(field=ID_FIELD, values=tuple(ids)))

    return must, should


def build_filter(options: SearchOptions | AggOptions) -> dict[str, Any] | None:
    """Build the bool filter document, or ``None`` when no filter is configured.

    Empty branches are left out entirely, never sent as empty lists.
    """
    must, should = collect_clauses(options)
    if not must and not should:
        return None

    bool_query: dict[str, Any] = {}
    if must:
        bool_query["must"] = [clause.to_query() for clause in must]
    if should:
        bool_query["should"] = [clause.to_query() for clause in should]
        minimum = getattr(options, "minimum_should_match", None)
        if minimum is not None:
            bool_query["minimum_should_match"] = minimum
    return {"bool": bool_query}


def compile_search(
    options: SearchOptions | Mapping[str, Any] | None,
    *,
    filter_key: FilterKey = "filter",
) -> dict[str, Any]:
    """Compile search options into a backend query document.

    Args:
        options: Normalized options, or a raw mapping to normalize first.
        filter_key: Document key for the bool filter (``"filter"`` for legacy
            backends, ``"post_filter"`` for current ones).

    Returns:
        The query document: paging, then the optional free-text query,
        filter and sort.

    Raises:
        UsageError: If any option is malformed.
    """
    if not isinstance(options, SearchOptions):
        options = normalize_search(options)

    body: dict[str, Any] = {"from": options.offset, "size": options.page_size}

    if options.query is not None:
        text = TextSearch(value=options.query, fields=tuple(options.fields), fuzziness=options.fuzziness)
        body["query"] = text.to_query()

    bool_filter = build_filter(options)
    if bool_filter is not None:
        body[filter_key] = bool_filter

    if options.sort is not None:
        body["sort"] = options.sort

    logger.debug("Compiled search query: %s", body)
    return body


def compile_agg(options: AggOptions | Mapping[str, Any] | None) -> dict[str, Any]:
    """Compile aggregation options into a backend query document.

    A single terms aggregation on ``group_by`` requests every bucket.  When
    filters are configured it is nested inside a filter aggregation so the
    bucket counts only cover the filtered documents.

    Raises:
        UsageError: If ``groupBy`` is missing or any filter is malformed.
    """
    if not isinstance(options, AggOptions):
        options = normalize_agg(options)

    if not options.group_by:
        raise UsageError("aggregation requires 'groupBy'", kind="groupBy")

    aggs: dict[str, Any] = {AGG_NAME: {"terms": {"field": options.group_by, "size": ALL_BUCKETS}}}

    bool_filter = build_filter(options)
    if bool_filter is not None:
        aggs = {FILTER_AGG_NAME: {"filter": bool_filter, "aggs": aggs}}

    body: dict[str, Any] = {"from": options.offset, "size": options.page_size, "aggs": aggs}
    logger.debug("Compiled aggregation query: %s", body)
    return body
