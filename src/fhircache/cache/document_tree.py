"""
Flattening of JSON documents into keyed nodes and back.

Each container becomes a node carrying its kind, each scalar a leaf node
carrying its value. List items are addressed by their decimal index, so an
array read back is an array again and empty containers survive the trip.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from fhircache.types import CompositeKey

DICT = "dict"
LIST = "list"
LEAF = "leaf"

Node = tuple[CompositeKey, str, Any]


def flatten_document(key: CompositeKey, document: Any) -> Iterator[Node]:
    """Yield (path, kind, value) nodes for a document rooted at key.

    Parents are always yielded before their children.
    """
    if isinstance(document, dict):
        yield key, DICT, None
        for name, child in document.items():
            yield from flatten_document(key + (str(name),), child)
    elif isinstance(document, (list, tuple)):
        yield key, LIST, None
        for index, child in enumerate(document):
            yield from flatten_document(key + (str(index),), child)
    else:
        yield key, LEAF, document


def is_under(path: CompositeKey, key: CompositeKey) -> bool:
    """True if path equals key or is one of its descendants."""
    return path[: len(key)] == key


def build_document(key: CompositeKey, nodes: Iterable[Node]) -> Any | None:
    """Rebuild the document rooted at key from its nodes.

    Nodes outside the key are ignored. Intermediate paths with no node of
    their own (written through a longer key) are rebuilt as dicts.

    Returns:
        The document, or None when nothing is stored under the key.
    """
    kinds: dict[CompositeKey, str] = {}
    values: dict[CompositeKey, Any] = {}
    children: dict[CompositeKey, dict[str, None]] = {}

    for path, kind, value in nodes:
        if not is_under(path, key):
            continue
        kinds[path] = kind
        values[path] = value
        for depth in range(len(key), len(path)):
            children.setdefault(path[:depth], {})[path[depth]] = None

    if key not in kinds and key not in children:
        return None

    def build(path: CompositeKey) -> Any:
        kind = kinds.get(path, DICT)
        if kind == LEAF:
            return values[path]
        segments = children.get(path, {})
        if kind == LIST:
            return [build(path + (seg,)) for seg in sorted(segments, key=int)]
        return {seg: build(path + (seg,)) for seg in segments}

    return build(key)
