"""Result normalizer: reshapes raw backend replies into stable result records.

Both the legacy reply shape (``hits.total`` is an integer) and the current
one (``hits.total`` is ``{"value": n, "relation": ...}``) are accepted.
"""

from __future__ import annotations

from typing import Any

from elquery.core.compiler import AGG_NAME, FILTER_AGG_NAME
from elquery.exceptions import ProtocolError
from elquery.models.result import AggResult, SearchResult


def _hit_container(body: Any) -> dict[str, Any]:
    hits = body.get("hits") if isinstance(body, dict) else None
    if not isinstance(hits, dict):
        raise ProtocolError("unexpected backend reply: no hit container", body=body)
    return hits


def _total(hits: dict[str, Any]) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        total = total.get("value", 0)
    if isinstance(total, bool) or not isinstance(total, int):
        raise ProtocolError(f"unexpected backend reply: hit total is {total!r}", body=hits)
    return total


def _hit_list(hits: dict[str, Any]) -> list[dict[str, Any]]:
    items = hits.get("hits")
    if items is None:
        return []
    if not isinstance(items, list):
        raise ProtocolError(f"unexpected backend reply: hit list is {type(items).__name__}", body=hits)
    return list(items)


def normalize_search_reply(body: Any) -> SearchResult:
    """Extract the total and hit list from a search reply.

    Raises:
        ProtocolError: If the reply has no hit container.
    """
    hits = _hit_container(body)
    return SearchResult(total=_total(hits), hits=_hit_list(hits))


def _aggregation(body: dict[str, Any]) -> Any:
    aggregations = body.get("aggregations")
    if aggregations is None:
        return None
    if not isinstance(aggregations, dict):
        raise ProtocolError("unexpected backend reply: aggregations is not an object", body=body)
    if AGG_NAME in aggregations:
        return aggregations[AGG_NAME]

    filtered = aggregations.get(FILTER_AGG_NAME)
    if filtered is None:
        return None
    if not isinstance(filtered, dict):
        raise ProtocolError(f"unexpected backend reply: '{FILTER_AGG_NAME}' is not an object", body=body)
    return filtered.get(AGG_NAME)


def normalize_agg_reply(body: Any, *, required: bool = False) -> AggResult:
    """Extract the total, hit list and bucket aggregation from a reply.

    The aggregation is looked up at the top level first, then inside the
    filter aggregation.

    Args:
        body: Decoded backend reply.
        required: Treat a reply without the aggregation as malformed. Set
            this when the request asked for one.

    Raises:
        ProtocolError: If the reply is malformed, or the aggregation is
            missing while *required*.
    """
    hits = _hit_container(body)
    aggregation = _aggregation(body)
    if aggregation is None and required:
        raise ProtocolError(f"unexpected backend reply: aggregation '{AGG_NAME}' missing", body=body)

    return AggResult(total=_total(hits), hits=_hit_list(hits), aggregation=aggregation)


def is_acknowledged(body: Any) -> bool:
    """Whether a reply reports success.

    Older backends answer ``{"ok": true}``, newer ones ``{"acknowledged":
    true}``; bulk-style replies succeed when ``total == successful``.
    """
    if not isinstance(body, dict) or not body:
        return False
    if body.get("ok") or body.get("acknowledged"):
        return True
    for section in (body, body.get("_shards")):
        if isinstance(section, dict) and "total" in section and "successful" in section:
            return bool(section["total"] == section["successful"])
    return False
