"""Configuration: pydantic-settings based, with YAML and env var support."""

from elquery.config.settings import BackendSettings, RetrySettings, SearchSettings, Settings, load_settings

__all__ = ["BackendSettings", "RetrySettings", "SearchSettings", "Settings", "load_settings"]
