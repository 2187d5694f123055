"""
By-query cache for FHIR search results.

Maps (resource type, query string) to the bundle fetched for it. Entries
are written once: the first set() for a query wins and later calls leave
the stored bundle alone.
"""

from __future__ import annotations

from typing import Any

from fhircache.cache.base import DocumentStore
from fhircache.logging import get_logger
from fhircache.types import BY_QUERY, DATA, CompositeKey, Logger

DEFAULT_NAMESPACE = "Fhir"


class QueryCache:
    """Cache of FHIR resources keyed by resource type and query.

    Keys are (namespace, resource_type, "by_query", query); the payload
    lives under the "data" child of that key. Queries are used verbatim.
    """

    def __init__(
        self,
        adapter: DocumentStore,
        namespace: str = DEFAULT_NAMESPACE,
        logger: Logger | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            adapter: Document store the entries live in.
            namespace: Leading segment of every key.
            logger: Logger for operation tracing. Defaults to the module logger.
        """
        self.adapter = adapter
        self.namespace = namespace
        self.logger = logger if logger is not None else get_logger(__name__)

    def key(self, resource_type: str, query: str) -> CompositeKey:
        """Existence key for a query."""
        return (self.namespace, resource_type, BY_QUERY, query)

    def data_key(self, resource_type: str, query: str) -> CompositeKey:
        """Payload key for a query."""
        return self.key(resource_type, query) + (DATA,)

    async def exists(self, resource_type: str, query: str) -> bool:
        """Check if a result for the query is cached."""
        self.logger.debug("query cache exists", resource_type=resource_type, query=query)

        return await self.adapter.exists(self.key(resource_type, query))

    async def set(self, resource_type: str, query: str, resource: Any) -> None:
        """Cache the result of a query unless one is already cached."""
        self.logger.debug("query cache set", resource_type=resource_type, query=query)

        if not await self.adapter.exists(self.key(resource_type, query)):
            await self.adapter.put_object(self.data_key(resource_type, query), resource)

    async def get(self, resource_type: str, query: str) -> Any | None:
        """Return the cached result of a query, or None."""
        self.logger.debug("query cache get", resource_type=resource_type, query=query)

        return await self.adapter.get_object_with_arrays(self.data_key(resource_type, query))
