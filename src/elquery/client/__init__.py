"""elquery clients: async and sync facades for searching a backend.

Quick start::

    from elquery.client import SearchClient
    from elquery.config import Settings

    client = SearchClient(Settings(backend={"url": "localhost:9200", "index_type": "lions"}))

    result = client.search({"mustMatch": {"name": "Simba"}, "pageSize": 10})
    buckets = client.aggregate({"groupBy": "pride"}).aggregation
"""

from elquery.client.client import AsyncSearchClient, SearchClient

__all__ = ["AsyncSearchClient", "SearchClient"]
