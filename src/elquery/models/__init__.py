"""Data models: options, clauses and results."""

from elquery.models.options import AggOptions, SearchOptions, normalize_agg, normalize_search
from elquery.models.result import AggResult, SearchResult

__all__ = [
    "AggOptions",
    "AggResult",
    "SearchOptions",
    "SearchResult",
    "normalize_agg",
    "normalize_search",
]
