"""Async HTTP client for the product REST API."""

import logging

import httpx

from .models import ProductDto, ProductsResponseDto

logger = logging.getLogger(__name__)


class ProductApiClient:
    """Thin async client for ``/products`` endpoints."""

    DEFAULT_BASE_URL = "https://dummyjson.com"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            base_url: API root, without trailing slash
            timeout: Request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ProductApiClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Client not started. Use async context manager.")
        return self._client

    async def get_products(self, limit: int = 30, skip: int = 0) -> ProductsResponseDto:
        """Fetch one window of the product listing.

        Args:
            limit: Number of products to return
            skip: Number of products to skip

        Returns:
            Parsed listing response

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            pydantic.ValidationError: On malformed payloads
        """
        client = self._require_client()
        logger.debug(f"GET /products limit={limit} skip={skip}")
        response = await client.get("/products", params={"limit": limit, "skip": skip})
        response.raise_for_status()
        return ProductsResponseDto.model_validate(response.json())

    async def get_product(self, product_id: int) -> ProductDto:
        """Fetch a single product by id."""
        client = self._require_client()
        logger.debug(f"GET /products/{product_id}")
        response = await client.get(f"/products/{product_id}")
        response.raise_for_status()
        return ProductDto.model_validate(response.json())
