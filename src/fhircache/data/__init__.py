"""
Data fetching package.

This package handles reads from the remote FHIR REST API and the
normalization of its failures.
"""

from fhircache.data.errors import normalize_error
from fhircache.data.resource_service import ResourceFetchService

__all__ = [
    "ResourceFetchService",
    "normalize_error",
]
