"""Shared test fixtures and configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from elquery.config.settings import Settings
from elquery.observability.logging import HANDLER_NAME

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance pointing at a local backend."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        backend={"url": "http://localhost:9200", "index_type": "lions"},
    )


@pytest.fixture
def sleeps() -> list[float]:
    """Records every backoff delay (seconds) instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def sample_reply() -> dict[str, Any]:
    """A search reply in the current backend shape."""
    return {
        "took": 3,
        "timed_out": False,
        "hits": {
            "total": {"value": 2, "relation": "eq"},
            "hits": [
                {"_id": "1", "_score": 1.0, "_source": {"name": "Simba", "pride": "pride rock"}},
                {"_id": "2", "_score": 0.8, "_source": {"name": "Nala", "pride": "pride rock"}},
            ],
        },
    }


@pytest.fixture
def make_http_client() -> Callable[[Handler], httpx.AsyncClient]:
    """Factory for ``httpx.AsyncClient`` instances answered by a handler function."""

    def _make(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop the handler ``setup_logging`` installs so streams don't leak across tests."""
    yield
    package_logger = logging.getLogger("elquery")
    for handler in [h for h in package_logger.handlers if h.get_name() == HANDLER_NAME]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
