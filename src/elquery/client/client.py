"""elquery clients: async and sync facades over compile → execute → normalize.

Usage::

    # Async
    async with AsyncSearchClient(settings) as client:
        result = await client.search({"mustMatch": {"name": "Simba"}})

    # Sync (wraps async client internally)
    client = SearchClient(settings)
    result = client.search({"mustMatch": {"name": "Simba"}})
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from typing import Any, TypeVar

import httpx

from elquery.config.settings import Settings
from elquery.core.compiler import compile_agg, compile_search
from elquery.core.executor import RequestExecutor, RequestSpec
from elquery.core.locators import make_search_uri
from elquery.core.normalizer import normalize_agg_reply, normalize_search_reply
from elquery.models.result import AggResult, SearchResult

_T = TypeVar("_T")

logger = logging.getLogger(__name__)

Options = Mapping[str, Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Async client
# ═══════════════════════════════════════════════════════════════════════════════


class AsyncSearchClient:
    """Async client for one index type on a search backend.

    The settings are copied at construction, so later changes to the passed
    object do not affect this client.

    Args:
        settings: Backend, retry and compilation settings. Defaults are used if None.
        http_client: Optional pre-built ``httpx.AsyncClient``. When omitted the
            client creates (and later closes) its own.
        sleep: Backoff sleep override, forwarded to the executor.
        rng: Jitter random source override, forwarded to the executor.

    Example::

        async with AsyncSearchClient(Settings(backend={"url": "localhost:9200", "index_type": "lions"})) as c:
            result = await c.search({"mustRange": {"age": {"gte": 3}}, "pageSize": 10})
            print(result.total, len(result.hits))
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = (settings or Settings()).model_copy(deep=True)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.backend.timeout),
        )
        executor_kwargs: dict[str, Any] = {
            "max_attempts": self.settings.retry.max_attempts,
            "backoff_base_ms": self.settings.retry.backoff_base_ms,
            "rng": rng,
        }
        if sleep is not None:
            executor_kwargs["sleep"] = sleep
        self._executor = RequestExecutor(self._client, **executor_kwargs)

    async def __aenter__(self) -> AsyncSearchClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this client created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def search_uri(self) -> str:
        return make_search_uri(self.settings.backend)

    # ── Compilation ──

    def compile_search(self, options: Options | None) -> dict[str, Any]:
        """Compile search options without sending them."""
        return compile_search(options, filter_key=self.settings.search.filter_key)

    def compile_agg(self, options: Options | None) -> dict[str, Any]:
        """Compile aggregation options without sending them."""
        return compile_agg(options)

    # ── Requests ──

    async def search(self, options: Options | None) -> SearchResult:
        """Run a filtered, paged search.

        Args:
            options: Search options mapping (``mustMatch``, ``page``, ...).

        Returns:
            Total hit count and the hits of the requested page.

        Raises:
            UsageError: Options are malformed (raised before any request).
            TransportError: The backend could not be reached.
            ProtocolError: The reply was not the expected shape.
            BackendError: The backend rejected the query.
        """
        body = self.compile_search(options)
        reply = await self._executor.execute(RequestSpec(url=self.search_uri, body=body))
        result = normalize_search_reply(reply)
        logger.info("Search completed: uri=%s, total=%d, returned=%d", self.search_uri, result.total, len(result.hits))
        return result

    async def aggregate(self, options: Options | None) -> AggResult:
        """Run a bucket aggregation, optionally restricted by filters.

        Args:
            options: Aggregation options mapping (``groupBy`` is required).

        Returns:
            Total hit count, the hits of the requested page and the buckets.
        """
        body = self.compile_agg(options)
        reply = await self._executor.execute(RequestSpec(url=self.search_uri, body=body))
        result = normalize_agg_reply(reply, required=True)
        logger.info("Aggregation completed: uri=%s, total=%d", self.search_uri, result.total)
        return result


# ═══════════════════════════════════════════════════════════════════════════════
# Sync client (wraps AsyncSearchClient)
# ═══════════════════════════════════════════════════════════════════════════════


class SearchClient:
    """Synchronous client.

    Wraps :class:`AsyncSearchClient` using ``asyncio.run``; each call opens
    and closes its own HTTP connection pool.

    Args:
        settings: Backend, retry and compilation settings.
        **client_kwargs: Additional keyword arguments passed to ``AsyncSearchClient``.
    """

    def __init__(self, settings: Settings | None = None, **client_kwargs: Any) -> None:
        self.settings = (settings or Settings()).model_copy(deep=True)
        self._client_kwargs = client_kwargs

    def _run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        """Run an async coroutine synchronously."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # Already inside an event loop (e.g. Jupyter): run in a worker thread
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                return pool.submit(asyncio.run, coro).result()
        return asyncio.run(coro)

    def _make_client(self) -> AsyncSearchClient:
        return AsyncSearchClient(self.settings, **self._client_kwargs)

    def compile_search(self, options: Options | None) -> dict[str, Any]:
        return compile_search(options, filter_key=self.settings.search.filter_key)

    def compile_agg(self, options: Options | None) -> dict[str, Any]:
        return compile_agg(options)

    def search(self, options: Options | None) -> SearchResult:
        """Run a filtered, paged search."""

        async def _call() -> SearchResult:
            async with self._make_client() as c:
                return await c.search(options)

        return self._run(_call())

    def aggregate(self, options: Options | None) -> AggResult:
        """Run a bucket aggregation."""

        async def _call() -> AggResult:
            async with self._make_client() as c:
                return await c.aggregate(options)

        return self._run(_call())
