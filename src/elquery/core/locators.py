"""URI construction for the search backend.

Index names are ``<prefix>-<type>`` when a prefix is configured, otherwise
just ``<type>``; the type doubles as the index name because indices are
addressed through aliases.
"""

from __future__ import annotations

from urllib.parse import quote

from elquery.config.settings import BackendSettings


def make_domain_uri(settings: BackendSettings) -> str:
    """``protocol://host[:port]``"""
    if settings.port:
        return f"{settings.protocol}://{settings.host}:{settings.port}"
    return f"{settings.protocol}://{settings.host}"


def make_index_name(settings: BackendSettings) -> str:
    return f"{settings.prefix}-{settings.index_type}" if settings.prefix else settings.index_type


def make_index_uri(settings: BackendSettings) -> str:
    return f"{make_domain_uri(settings)}/{make_index_name(settings)}"


def make_type_uri(settings: BackendSettings) -> str:
    return f"{make_index_uri(settings)}/{settings.index_type}"


def make_document_uri(settings: BackendSettings, doc_id: str) -> str:
    return f"{make_type_uri(settings)}/{quote(str(doc_id), safe='')}"


def make_search_uri(settings: BackendSettings) -> str:
    return f"{make_index_uri(settings)}/_search"


def make_alias_uri(settings: BackendSettings) -> str:
    return f"{make_domain_uri(settings)}/_aliases"


def make_bulk_index_uri(index_name: str, settings: BackendSettings) -> str:
    return f"{make_domain_uri(settings)}/{index_name}/_bulk"
