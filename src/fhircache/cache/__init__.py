"""
Cache package for FHIR query results.

This package provides:
- Query cache (query_cache.py): write-once cache of bundles by resource type and query
- Document stores (memory_store.py, sqlite_store.py): composite-key storage adapters
- Document tree (document_tree.py): flattening of documents into keyed nodes
"""

from fhircache.cache.base import DocumentStore
from fhircache.cache.memory_store import InMemoryDocumentStore
from fhircache.cache.query_cache import QueryCache
from fhircache.cache.sqlite_store import SQLiteDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "QueryCache",
    "SQLiteDocumentStore",
]
