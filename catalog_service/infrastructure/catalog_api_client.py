"""
Upstream catalog API client.

Thin async client over the commerce backend proxy. Every read goes through
RetryingClient and returns the raw JSON body; normalisation happens in the
catalog and discounts packages.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from catalog_service.infrastructure.retrying_client import RetryingClient

logger = logging.getLogger(__name__)


class CatalogApiClient:
    """
    Async client for the catalog proxy endpoints.

    Reads are idempotent and retried. The HTTP client is created lazily and
    shared across calls until close().
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        retrying_client: Optional[RetryingClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Proxy base URL, e.g. http://localhost:3001/api/square
            timeout_seconds: Per-request timeout
            retrying_client: Retry policy (3 attempts with backoff by default)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds
        self.retrying_client = retrying_client or RetryingClient()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": "Catalog-Service/1.0",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client connections."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _read(
        self,
        method: str,
        path: str,
        operation: str,
        json: Optional[Dict[str, Any]] = None,
        expected_fields: Optional[list] = None,
    ) -> Dict[str, Any]:
        client = await self._get_client()

        async def send() -> httpx.Response:
            if method == "GET":
                return await client.get(path)
            return await client.request(method, path, json=json if json is not None else {})

        return await self.retrying_client.execute(send, operation, expected_fields)

    async def fetch_locations(self) -> Dict[str, Any]:
        """GET /locations; the body must carry a ``locations`` list."""
        return await self._read("GET", "/locations", "getLocations", expected_fields=["locations"])

    async def fetch_products(self) -> Dict[str, Any]:
        """POST /products; all items for all locations plus related image objects."""
        return await self._read("POST", "/products", "getProducts", json={})

    async def fetch_categories(self) -> Dict[str, Any]:
        return await self._read("GET", "/categories", "getCategories")

    async def fetch_modifiers(self) -> Dict[str, Any]:
        return await self._read("POST", "/modifiers", "getModifiers")

    async def fetch_discounts(self) -> Dict[str, Any]:
        return await self._read("POST", "/discounts", "getDiscounts")

    async def fetch_measurement_units(self) -> Dict[str, Any]:
        return await self._read("POST", "/measurement-units", "getMeasurementUnits")

    async def post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        """
        Send a single non-idempotent write.

        No retry and no status classification; callers inspect the response.
        """
        client = await self._get_client()
        return await client.post(path, json=payload)
