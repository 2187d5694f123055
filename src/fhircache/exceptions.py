"""
Custom exception hierarchy for the FHIR query cache.

All exceptions inherit from FhirCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any

DEFAULT_ERROR_CODE = 500


class FhirCacheError(Exception):
    """Base exception for all FHIR query cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(FhirCacheError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Missing FHIR_API_HOST
        - Host without an http(s) scheme
    """

    pass


class StorageError(FhirCacheError):
    """Raised when a document store is misused.

    Context should include:
        - store: The store class name
        - key: The composite key involved, if any
    """

    pass


class ResourceFetchError(FhirCacheError):
    """Normalized failure of a remote FHIR read.

    Carries the remote-reported ``message`` and ``code``. The underlying
    httpx exception, if any, is chained as ``__cause__`` and never raised
    to callers directly.

    Context should include:
        - url: The URL that was being fetched
    """

    def __init__(
        self,
        message: str,
        code: int = DEFAULT_ERROR_CODE,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        """Return the ``{message, code}`` shape exposed to callers."""
        return {"message": self.message, "code": self.code}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceFetchError):
            return NotImplemented
        return (self.message, self.code) == (other.message, other.code)

    def __hash__(self) -> int:
        return hash((self.message, self.code))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code!r})"
