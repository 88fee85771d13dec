"""Product repository: turns API calls into typed fetch results."""

import logging
from typing import Protocol

from .client import ProductApiClient
from .errors import FetchResult, FetchSuccess, classify
from .models import Page, ProductDetail

logger = logging.getLogger(__name__)


class ProductFetcher(Protocol):
    """Anything that can load one page of products."""

    async def fetch(self, page: int) -> FetchResult[Page]:
        ...


class ProductRepository:
    """``ProductFetcher`` backed by the REST API.

    Never raises for transport or parsing failures: every outcome comes back
    as ``FetchSuccess`` or ``FetchError``.
    """

    PAGE_SIZE = 30

    def __init__(self, client: ProductApiClient, page_size: int = PAGE_SIZE):
        """Initialize repository.

        Args:
            client: Started API client
            page_size: Products per page
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.client = client
        self.page_size = page_size

    async def fetch(self, page: int) -> FetchResult[Page]:
        """Fetch a 1-based page of products."""
        skip = (page - 1) * self.page_size
        try:
            response = await self.client.get_products(limit=self.page_size, skip=skip)
            return FetchSuccess(response.to_page())
        except Exception as e:
            error = classify(e)
            logger.warning(f"Failed to fetch page {page}: {error.kind.value}: {e}")
            return error

    async def fetch_detail(self, product_id: int) -> FetchResult[ProductDetail]:
        """Fetch full details of one product."""
        try:
            dto = await self.client.get_product(product_id)
            return FetchSuccess(dto.to_product_detail())
        except Exception as e:
            error = classify(e)
            logger.warning(f"Failed to fetch product {product_id}: {error.kind.value}: {e}")
            return error
