"""Error taxonomy for query compilation, transport and reply handling.

Every error carries a human-readable message plus a ``detail`` dict with the
diagnostic payload for its category, so callers can log or inspect a
failure without re-running the request.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from elquery.core.executor import RequestSpec


class ElQueryError(Exception):
    """Base exception for elquery errors."""

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (safe for logging)."""
        payload: dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
            "detail": self.detail,
        }
        if self.__cause__ is not None:
            payload["cause"] = repr(self.__cause__)
        return payload

    def __str__(self) -> str:
        return self.message


class UsageError(ElQueryError):
    """Raised when caller-supplied options are malformed for a filter kind."""

    def __init__(self, message: str, *, kind: str | None = None, field: str | None = None) -> None:
        super().__init__(message, detail={"kind": kind, "field": field})
        self.kind = kind
        self.field = field


class ConfigurationError(ElQueryError):
    """Raised when backend connection settings are invalid."""


class TransportError(ElQueryError):
    """Raised when the HTTP request could not be completed.

    Attributes:
        cause: The underlying ``httpx`` exception.
        attempts: Number of attempts made, including the first.
        request: The request that failed.
    """

    def __init__(self, message: str, *, cause: BaseException, attempts: int, request: RequestSpec) -> None:
        super().__init__(
            message,
            detail={"attempts": attempts, "method": request.method, "url": request.url},
        )
        self.cause = cause
        self.attempts = attempts
        self.request = request


class ProtocolError(ElQueryError):
    """Raised when the backend reply is unparsable or structurally unexpected.

    Attributes:
        body: The raw reply (text when it failed to parse, else the decoded value).
        request: The request that produced the reply, if known.
    """

    def __init__(self, message: str, *, body: Any, request: RequestSpec | None = None) -> None:
        super().__init__(message, detail={"body": _preview(body)})
        self.body = body
        self.request = request


class BackendError(ElQueryError):
    """Raised when the backend explicitly reports a failure in its reply.

    Attributes:
        payload: The backend's decoded error reply.
        status_code: HTTP status of the reply.
        request: The request that was rejected.
    """

    def __init__(
        self,
        message: str,
        *,
        payload: dict[str, Any],
        status_code: int,
        request: RequestSpec | None = None,
    ) -> None:
        super().__init__(message, detail={"status_code": status_code, "payload": payload})
        self.payload = payload
        self.status_code = status_code
        self.request = request


def _preview(body: Any, limit: int = 2000) -> str:
    """Render a reply body for diagnostics, truncated to *limit* characters."""
    if isinstance(body, str):
        text = body
    else:
        try:
            text = json.dumps(body, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            text = repr(body)
    return text if len(text) <= limit else text[:limit] + "..."
