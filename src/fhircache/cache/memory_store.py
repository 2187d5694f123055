"""
In-memory document store.

Holds flattened document nodes in a dict keyed by composite path. Used by
tests and short-lived processes; nothing survives the process.
"""

from __future__ import annotations

from typing import Any

from fhircache.cache.base import DocumentStore, normalize_key
from fhircache.cache.document_tree import build_document, flatten_document, is_under
from fhircache.types import CompositeKey


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed DocumentStore.

    None of the methods suspend, so an exists() followed by put_object()
    from one coroutine cannot interleave with another coroutine's calls.
    """

    def __init__(self) -> None:
        self._nodes: dict[CompositeKey, tuple[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    async def exists(self, key: CompositeKey) -> bool:
        key = normalize_key(key, store=type(self).__name__)
        return any(is_under(path, key) for path in self._nodes)

    async def put_object(self, key: CompositeKey, value: Any) -> None:
        key = normalize_key(key, store=type(self).__name__)
        for path in [p for p in self._nodes if is_under(p, key)]:
            del self._nodes[path]
        for path, kind, node_value in flatten_document(key, value):
            self._nodes[path] = (kind, node_value)

    async def get_object_with_arrays(self, key: CompositeKey) -> Any | None:
        key = normalize_key(key, store=type(self).__name__)
        return build_document(
            key,
            ((path, kind, value) for path, (kind, value) in self._nodes.items()),
        )

    def clear(self) -> None:
        """Drop every stored node."""
        self._nodes.clear()
