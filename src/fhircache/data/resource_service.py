"""
FHIR REST client for reading resources and search bundles.

Reads are authenticated with a caller-supplied bearer token. Successful
responses are parsed into documents; an empty 2xx body is an empty
document, not an error. Every failure is raised as ResourceFetchError.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson

from fhircache.config import Settings, get_settings
from fhircache.data.errors import normalize_error
from fhircache.exceptions import DEFAULT_ERROR_CODE, ResourceFetchError
from fhircache.logging import get_logger
from fhircache.types import Logger

FHIR_JSON = "application/fhir+json"


class ResourceFetchService:
    """Client for a remote FHIR REST API.

    Host and path prefix are fixed at construction; tokens are passed per
    call. No retries are attempted; timeouts are enforced by httpx.
    """

    def __init__(
        self,
        host: str,
        path: str = "",
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            host: Base URL of the FHIR API, may include a base path.
            path: Optional path prefix appended to the host.
            timeout: Request timeout in seconds for the owned client.
            client: Pre-built httpx client. The service does not close it.
            logger: Logger for request tracing. Defaults to the module logger.
        """
        self.host = host.rstrip("/")
        self.path = path.strip("/")
        self.timeout = timeout
        self.logger = logger if logger is not None else get_logger(__name__)
        self._client = client
        self._owns_client = client is None

    @classmethod
    def create(cls, settings: Settings | None = None, **kwargs: Any) -> ResourceFetchService:
        """Build a service from application settings.

        Args:
            settings: Settings to read host, path and timeout from.
                Defaults to get_settings().
            **kwargs: Passed through to the constructor (client, logger).
        """
        settings = settings or get_settings()
        return cls(
            settings.api_host,
            settings.api_path,
            timeout=settings.FHIR_API_TIMEOUT_SECONDS,
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        """Host joined with the path prefix."""
        return f"{self.host}/{self.path}" if self.path else self.host

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ResourceFetchService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": FHIR_JSON,
        }

    async def _get(self, url: str, token: str) -> dict[str, Any]:
        """GET a URL and parse the JSON body.

        Raises:
            ResourceFetchError: On non-2xx status, transport failure or
                an unparseable body.
        """
        client = await self._get_client()

        self.logger.info("Fetching from FHIR", url=url)

        try:
            response = await client.get(url, headers=self._headers(token))
            response.raise_for_status()
        except Exception as e:
            error = normalize_error(e, url)
            self.logger.warning(
                "FHIR request failed", url=url, code=error.code, message=error.message
            )
            raise error from e

        content = response.content
        if not content.strip():
            self.logger.debug("Empty FHIR response body", url=url, status=response.status_code)
            return {}

        try:
            return orjson.loads(content)
        except orjson.JSONDecodeError as e:
            raise ResourceFetchError(
                "Failed to parse response body",
                DEFAULT_ERROR_CODE,
                context={"url": url, "error": str(e)},
            ) from e

    async def get_resource(self, reference: str, token: str) -> dict[str, Any]:
        """Read a single resource.

        Args:
            reference: Relative reference, e.g. "Immunization/48f8c9e3".
            token: Bearer token for the remote API.

        Returns:
            The resource, or {} when the server answered 2xx with no body.

        Raises:
            ResourceFetchError: If the read fails.
        """
        url = f"{self.base_url}/{reference.lstrip('/')}"
        return await self._get(url, token)

    async def get_resources(self, resource_type: str, query: str, token: str) -> dict[str, Any]:
        """Run a search and return the bundle.

        A bundle with an empty ``entry`` list is a successful zero-match
        result and is returned unchanged.

        Args:
            resource_type: FHIR resource type, e.g. "Immunization".
            query: Search query string, passed through verbatim.
            token: Bearer token for the remote API.

        Returns:
            The search bundle, or {} when the server answered 2xx with no body.

        Raises:
            ResourceFetchError: If the search fails.
        """
        url = f"{self.base_url}/{resource_type}"
        if query:
            url = f"{url}?{query}"
        return await self._get(url, token)
