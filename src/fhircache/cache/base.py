"""
Base classes for document storage.

A document store resolves composite keys (ordered string segments) to
subtrees of stored nodes. Documents written with put_object() come back
from get_object_with_arrays() with the same nested dict/list structure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from fhircache.exceptions import StorageError
from fhircache.types import CompositeKey


def normalize_key(key: Iterable[str], store: str = "DocumentStore") -> CompositeKey:
    """Coerce a key to a tuple of string segments.

    Raises:
        StorageError: If the key is empty or has a non-string segment.
    """
    segments = tuple(key)
    if not segments:
        raise StorageError("Composite key must have at least one segment", context={"store": store})
    for segment in segments:
        if not isinstance(segment, str):
            raise StorageError(
                "Composite key segments must be strings",
                context={"store": store, "key": segments},
            )
    return segments


class DocumentStore(ABC):
    """Abstract interface for composite-key document stores."""

    @abstractmethod
    async def exists(self, key: CompositeKey) -> bool:
        """Check if anything is stored at or below the key."""
        ...

    @abstractmethod
    async def put_object(self, key: CompositeKey, value: Any) -> None:
        """Store a document at the key, replacing any existing subtree."""
        ...

    @abstractmethod
    async def get_object_with_arrays(self, key: CompositeKey) -> Any | None:
        """Rebuild the document stored at the key, or None if absent."""
        ...

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None
