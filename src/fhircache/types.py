"""
Core types shared across the FHIR query cache.

- CompositeKey: ordered key segments resolved by a document store
- Logger: protocol satisfied by ContextLogger and NullLogger
- Helpers for request IDs and timestamps
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

from uuid6 import uuid7

CompositeKey = tuple[str, ...]

BY_QUERY = "by_query"
DATA = "data"


class Logger(Protocol):
    """Logging surface the components depend on."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "req")

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)
