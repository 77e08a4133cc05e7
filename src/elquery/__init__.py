"""elquery: Declarative search/aggregation compiler with a resilient HTTP client."""

from elquery.client import AsyncSearchClient, SearchClient
from elquery.core.compiler import compile_agg, compile_search
from elquery.exceptions import (
    BackendError,
    ConfigurationError,
    ElQueryError,
    ProtocolError,
    TransportError,
    UsageError,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncSearchClient",
    "BackendError",
    "ConfigurationError",
    "ElQueryError",
    "ProtocolError",
    "SearchClient",
    "TransportError",
    "UsageError",
    "__version__",
    "compile_agg",
    "compile_search",
]
