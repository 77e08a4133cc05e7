"""Backend, retry and compilation settings loaded from YAML, env vars and overrides.

Configuration is loaded from (in order of precedence):
  1. Explicit values (YAML config file or constructor arguments)
  2. Environment variables (ELQUERY_ prefix)
  3. Default values

A client reads its settings once at construction; nothing here is mutated
afterwards by the library.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from elquery.exceptions import ConfigurationError

# Protocol is optional; host and port are required.
_URL_PATTERN = re.compile(r"^((http|https)://)?(.+):([0-9]+)")


class BackendSettings(BaseModel):
    """Location of the search backend and the index type to query.

    Either give ``protocol``/``host``/``port`` separately, or a ``url`` of the
    form ``[protocol://]host:port``.  When both are given they must agree.
    """

    protocol: str = Field(default="http", description="URL scheme: http or https")
    host: str = Field(default="localhost", description="Backend host name")
    port: int | None = Field(default=None, description="Backend port (omitted from URIs when unset)")
    prefix: str = Field(default="", description="Index name prefix, joined to the type with '-'")
    url: str | None = Field(default=None, description="Backend URL, e.g. 'http://localhost:9200'")
    index_type: str = Field(default="documents", description="Document type, also used as the index name")
    timeout: float = Field(default=30.0, gt=0, description="Per-attempt HTTP timeout in seconds")

    @field_validator("protocol")
    @classmethod
    def _check_protocol(cls, v: str) -> str:
        if v not in ("http", "https"):
            raise ValueError(f"protocol must be 'http' or 'https', got {v!r}")
        return v

    @field_validator("index_type")
    @classmethod
    def _lowercase_type(cls, v: str) -> str:
        return v.lower()

    @model_validator(mode="after")
    def _merge_url(self) -> BackendSettings:
        """Fill protocol, host and port from ``url``, rejecting conflicts."""
        if not self.url:
            return self

        match = _URL_PATTERN.match(self.url)
        if not match:
            raise ValueError(f"url must contain host and port. url: `{self.url}`.")

        url_protocol, host, url_port = match.group(2), match.group(3), int(match.group(4))
        explicit = self.model_fields_set

        if url_protocol and "protocol" in explicit and url_protocol != self.protocol:
            raise ValueError(
                "url specifies different protocol than protocol specified in settings. Pick one."
            )
        if "port" in explicit and self.port is not None and url_port != self.port:
            raise ValueError("url specifies different port than port specified in settings. Pick one.")

        if url_protocol:
            self.protocol = url_protocol
        self.host = host
        self.port = url_port
        return self


class RetrySettings(BaseModel):
    """Retry policy for transient transport failures."""

    max_attempts: int = Field(default=3, ge=0, description="Retries after the first attempt")
    backoff_base_ms: float = Field(default=500.0, gt=0, description="Linear backoff step in milliseconds")


class SearchSettings(BaseModel):
    """Query compilation defaults."""

    filter_key: Literal["filter", "post_filter"] = Field(
        default="filter",
        description="Document key holding the bool filter: 'filter' (legacy) or 'post_filter'",
    )


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root settings.

    Configuration is loaded from environment variables with the ELQUERY_ prefix.
    Nested settings use double underscores: ELQUERY_BACKEND__PORT=9200

    Example:
        ELQUERY_BACKEND__URL=http://search.internal:9200
        ELQUERY_BACKEND__PREFIX=staging
        ELQUERY_RETRY__MAX_ATTEMPTS=5
    """

    model_config = {
        "env_prefix": "ELQUERY_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    backend: BackendSettings = Field(default_factory=BackendSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file override the built-in defaults.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        return cls(**_read_yaml(path))


def load_settings(path: str | Path | None = None, **overrides: Any) -> Settings:
    """Build settings from an optional YAML file plus explicit overrides.

    Nested sections in *overrides* are merged over the file's sections.

    Raises:
        ConfigurationError: If the resulting settings are invalid.
        FileNotFoundError: If *path* does not exist.
    """
    data = _read_yaml(path) if path is not None else {}

    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(data.get(key), dict):
            data[key] = {**data[key], **value}
        else:
            data[key] = value

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid settings: {e}") from e


def _read_yaml(path: str | Path) -> dict[str, Any]:
    import yaml  # type: ignore[import-untyped]

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}
