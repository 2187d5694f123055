"""
CachedResourceService - cache-first FHIR searches.

Combines:
- QueryCache lookups by resource type and query
- ResourceFetchService reads on a miss
- Write-once population of the cache after a successful fetch
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fhircache.cache.query_cache import QueryCache
from fhircache.data.resource_service import ResourceFetchService
from fhircache.logging import get_logger, log_context
from fhircache.types import Logger


@dataclass(frozen=True)
class CachedResult:
    """A search bundle and whether it came from the cache."""

    document: Any
    cache_hit: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {"document": self.document, "cache_hit": self.cache_hit}


class CachedResourceService:
    """Answers searches from the query cache, fetching on a miss.

    Failed fetches propagate as ResourceFetchError and leave the cache
    untouched. Empty bundles are cached like any other result.
    """

    def __init__(
        self,
        cache: QueryCache,
        fetcher: ResourceFetchService,
        logger: Logger | None = None,
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.logger = logger if logger is not None else get_logger(__name__)

    async def lookup(
        self,
        resource_type: str,
        query: str,
        token: str,
        *,
        bypass_cache: bool = False,
    ) -> CachedResult:
        """Resolve a search, reporting whether the cache answered it.

        Args:
            resource_type: FHIR resource type.
            query: Search query string.
            token: Bearer token used on a miss.
            bypass_cache: Skip the cache read and always fetch. The cached
                entry, if any, is kept; the fresh bundle is only returned.
        """
        with log_context(resource_type=resource_type):
            if not bypass_cache and await self.cache.exists(resource_type, query):
                document = await self.cache.get(resource_type, query)
                self.logger.info("Query cache hit", query=query)
                return CachedResult(document=document, cache_hit=True)

            self.logger.info("Query cache miss", query=query, bypass_cache=bypass_cache)
            document = await self.fetcher.get_resources(resource_type, query, token)
            await self.cache.set(resource_type, query, document)

            return CachedResult(document=document, cache_hit=False)

    async def get_resources(
        self,
        resource_type: str,
        query: str,
        token: str,
        *,
        bypass_cache: bool = False,
    ) -> Any:
        """Return the bundle for a search, from cache when possible."""
        result = await self.lookup(resource_type, query, token, bypass_cache=bypass_cache)
        return result.document

    async def get_resource(self, reference: str, token: str) -> dict[str, Any]:
        """Read a single resource. Single reads are not cached."""
        return await self.fetcher.get_resource(reference, token)
