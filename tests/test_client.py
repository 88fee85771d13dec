"""Tests for the product API client and repository."""

import httpx
import pytest

from catalog_browser.client import ProductApiClient
from catalog_browser.errors import ErrorKind, FetchError, FetchSuccess
from catalog_browser.repository import ProductRepository

TOTAL_PRODUCTS = 65


def fake_api(request: httpx.Request) -> httpx.Response:
    """Serve a catalog of TOTAL_PRODUCTS products, DummyJSON style."""
    if request.url.path == "/products":
        limit = int(request.url.params["limit"])
        skip = int(request.url.params["skip"])
        ids = range(skip + 1, min(skip + limit, TOTAL_PRODUCTS) + 1)
        return httpx.Response(200, json={
            "products": [{"id": i, "title": f"Product {i}", "price": float(i)} for i in ids],
            "total": TOTAL_PRODUCTS,
            "skip": skip,
            "limit": limit,
        })
    if request.url.path == "/products/1":
        return httpx.Response(200, json={
            "id": 1,
            "title": "Essence Mascara",
            "price": 9.99,
            "brand": "Essence",
            "category": "beauty",
            "images": ["https://cdn.example.com/1.png"],
        })
    return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
async def client():
    async with ProductApiClient("https://api.test/", transport=httpx.MockTransport(fake_api)) as client:
        yield client


class TestProductApiClient:
    """Tests for raw endpoint access."""

    @pytest.mark.asyncio
    async def test_get_products(self, client):
        response = await client.get_products(limit=30, skip=30)
        assert response.skip == 30
        assert [p.id for p in response.products][:2] == [31, 32]

    @pytest.mark.asyncio
    async def test_get_product(self, client):
        dto = await client.get_product(1)
        assert dto.title == "Essence Mascara"

    @pytest.mark.asyncio
    async def test_not_found_raises(self, client):
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_product(999)

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        client = ProductApiClient()
        with pytest.raises(RuntimeError, match="Client not started"):
            await client.get_products()

    def test_strips_trailing_slash(self):
        assert ProductApiClient("https://api.test/").base_url == "https://api.test"


class TestProductRepository:
    """Tests for page fetching."""

    @pytest.mark.asyncio
    async def test_fetch_first_page(self, client):
        result = await ProductRepository(client).fetch(1)
        assert isinstance(result, FetchSuccess)
        page = result.data
        assert page.current_page == 1
        assert page.total_pages == 3
        assert len(page.items) == 30
        assert page.items[0].price == "$1.00"

    @pytest.mark.asyncio
    async def test_fetch_last_page(self, client):
        result = await ProductRepository(client).fetch(3)
        page = result.data
        assert page.current_page == 3
        assert page.has_more_pages is False
        assert [p.id for p in page.items] == [61, 62, 63, 64, 65]

    @pytest.mark.asyncio
    async def test_custom_page_size(self, client):
        result = await ProductRepository(client, page_size=10).fetch(2)
        assert result.data.current_page == 2
        assert result.data.total_pages == 7
        assert result.data.items[0].id == 11

    def test_rejects_non_positive_page_size(self):
        with pytest.raises(ValueError):
            ProductRepository(ProductApiClient(), page_size=0)

    @pytest.mark.asyncio
    async def test_server_error_becomes_fetch_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with ProductApiClient("https://api.test", transport=transport) as client:
            result = await ProductRepository(client).fetch(1)
        assert result == FetchError("Server error. Please try again later.", ErrorKind.SERVER_ERROR)

    @pytest.mark.asyncio
    async def test_malformed_payload_becomes_parsing_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"products": "oops"}))
        async with ProductApiClient("https://api.test", transport=transport) as client:
            result = await ProductRepository(client).fetch(1)
        assert isinstance(result, FetchError)
        assert result.kind is ErrorKind.PARSING_ERROR

    @pytest.mark.asyncio
    async def test_non_json_body_becomes_parsing_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        async with ProductApiClient("https://api.test", transport=transport) as client:
            result = await ProductRepository(client).fetch(1)
        assert result.kind is ErrorKind.PARSING_ERROR

    @pytest.mark.asyncio
    async def test_connection_error_becomes_network_error(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with ProductApiClient("https://api.test", transport=httpx.MockTransport(refuse)) as client:
            result = await ProductRepository(client).fetch(1)
        assert result.kind is ErrorKind.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_fetch_detail(self, client):
        result = await ProductRepository(client).fetch_detail(1)
        detail = result.data
        assert detail.brand == "Essence"
        assert detail.price == "$9.99"
        assert detail.images == ("https://cdn.example.com/1.png",)

    @pytest.mark.asyncio
    async def test_fetch_detail_not_found(self, client):
        result = await ProductRepository(client).fetch_detail(42)
        assert result == FetchError("Resource not found.", ErrorKind.CLIENT_ERROR)
