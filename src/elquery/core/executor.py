"""Resilient request executor: sends a request with bounded linear backoff.

Each call to :meth:`RequestExecutor.execute` runs a small state machine::

    Attempting(1) ──transient error, n <= max_attempts──▶ Attempting(n+1)
         │
         ├── non-transient error / retries exhausted ──▶ Failed (TransportError)
         ├── body not a JSON object ───────────────────▶ Failed (ProtocolError)
         ├── backend error reply ──────────────────────▶ Failed (BackendError)
         └── JSON object ──────────────────────────────▶ Succeeded

Attempts are strictly sequential.  The backoff delay after the n-th failed
attempt is ``backoff_base * n + uniform(0, backoff_base)`` milliseconds.
Cancelling the surrounding task interrupts the request or the sleep and no
further attempts are made.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from elquery.exceptions import BackendError, ProtocolError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_MS = 500.0

_TRANSIENT_ERRORS: tuple[type[httpx.TransportError], ...] = (
    httpx.TimeoutException,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)
_TRANSIENT_CAUSES: tuple[type[BaseException], ...] = (
    ConnectionResetError,
    BrokenPipeError,
    TimeoutError,
)


class RequestSpec(BaseModel):
    """An HTTP request to send to the search backend."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(default="POST", description="HTTP method")
    url: str = Field(description="Absolute request URL")
    body: dict[str, Any] | None = Field(default=None, description="JSON body")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")


class AttemptState(enum.Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def is_transient(error: BaseException) -> bool:
    """Whether a transport error is worth retrying (reset, broken pipe, timeout)."""
    if isinstance(error, _TRANSIENT_ERRORS):
        return True
    seen: set[int] = set()
    cause: BaseException | None = error
    while cause is not None and id(cause) not in seen:
        if isinstance(cause, _TRANSIENT_CAUSES):
            return True
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    return False


class RequestExecutor:
    """Sends requests over a shared ``httpx.AsyncClient`` with retry on transient errors.

    The executor holds no per-request state, so one instance can serve any
    number of concurrent ``execute`` calls.

    Args:
        client: HTTP client used for every attempt.
        max_attempts: Retries allowed after the first attempt.
        backoff_base_ms: Linear backoff step in milliseconds.
        sleep: Awaitable sleep taking seconds (injectable for tests).
        rng: Random source for the jitter (injectable for tests).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base_ms: float = DEFAULT_BACKOFF_BASE_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self.max_attempts = max_attempts
        self.backoff_base_ms = backoff_base_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

    def compute_delay(self, attempt: int) -> float:
        """Backoff delay in milliseconds after the *attempt*-th failed attempt."""
        return self.backoff_base_ms * attempt + self._rng.uniform(0, self.backoff_base_ms)

    async def execute(self, spec: RequestSpec) -> dict[str, Any]:
        """Send *spec* and return the decoded JSON reply.

        Raises:
            TransportError: On a non-transient transport failure, or once
                ``max_attempts`` retries have been used up.
            ProtocolError: If the reply is not a JSON object.
            BackendError: If the backend replied with an error document.
        """
        attempt = 0
        state = AttemptState.ATTEMPTING
        response: httpx.Response | None = None

        while state is AttemptState.ATTEMPTING:
            attempt += 1
            try:
                response = await self._client.request(
                    spec.method,
                    spec.url,
                    json=spec.body,
                    headers=spec.headers or None,
                )
                state = AttemptState.SUCCEEDED
            except httpx.TransportError as e:
                if not is_transient(e) or attempt > self.max_attempts:
                    logger.error(
                        "Backend request failed: method=%s, url=%s, attempts=%d, error=%r",
                        spec.method,
                        spec.url,
                        attempt,
                        e,
                    )
                    raise TransportError(
                        f"backend request error: {e!r}",
                        cause=e,
                        attempts=attempt,
                        request=spec,
                    ) from e

                delay_ms = self.compute_delay(attempt)
                logger.warning(
                    "Transient backend error, retrying: url=%s, attempt=%d, delay_ms=%.0f, error=%r",
                    spec.url,
                    attempt,
                    delay_ms,
                    e,
                )
                await self._sleep(delay_ms / 1000)

        assert response is not None
        return self._parse(response, spec)

    @staticmethod
    def _parse(response: httpx.Response, spec: RequestSpec) -> dict[str, Any]:
        """Decode the reply body, turning malformed or error replies into exceptions."""
        text = response.text
        try:
            body = json.loads(text)
        except ValueError as e:
            raise ProtocolError(
                f"backend did not send back a valid JSON reply (HTTP {response.status_code})",
                body=text,
                request=spec,
            ) from e

        if not isinstance(body, dict):
            raise ProtocolError(
                f"backend reply is not a JSON object (HTTP {response.status_code})",
                body=body,
                request=spec,
            )

        if response.status_code >= 400 and "error" in body:
            raise BackendError(
                f"backend reported an error (HTTP {response.status_code}): {body['error']!r}",
                payload=body,
                status_code=response.status_code,
                request=spec,
            )

        return body
