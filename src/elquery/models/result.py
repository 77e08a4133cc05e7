"""Normalized search and aggregation results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """Hits returned for a search request."""

    total: int = Field(default=0, description="Total number of matching documents")
    hits: list[dict[str, Any]] = Field(default_factory=list, description="Raw hit documents, in backend order")


class AggResult(SearchResult):
    """Hits plus the bucket aggregation returned for an aggregation request."""

    aggregation: dict[str, Any] | None = Field(
        default=None,
        description="Backend-native bucket structure, None when the reply carried none",
    )
