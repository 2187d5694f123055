"""
Service layer composing the query cache with the FHIR client.
"""

from fhircache.services.cached_resource import CachedResourceService, CachedResult

__all__ = [
    "CachedResourceService",
    "CachedResult",
]
