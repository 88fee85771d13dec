"""Data models for the product catalog browser."""

import math

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """Product as shown in the catalog grid."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Product identifier, stable across pages")
    name: str = Field(description="Product name")
    brand: str = Field(description="Brand name")
    price: str | None = Field(default=None, description="Formatted price")
    thumbnail: str = Field(default="", description="Thumbnail image URL")


class ProductDetail(BaseModel):
    """Full product information for the detail view."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Product identifier")
    name: str = Field(description="Product name")
    brand: str = Field(description="Brand name")
    price: str | None = Field(default=None, description="Formatted price")
    thumbnail: str = Field(default="", description="Thumbnail image URL")
    description: str | None = Field(default=None)
    category: str | None = Field(default=None)
    images: tuple[str, ...] = Field(default=())


class Page(BaseModel):
    """One page of products plus pagination metadata."""

    model_config = ConfigDict(frozen=True)

    items: tuple[Product, ...] = Field(default=())
    current_page: int = Field(description="1-based page number")
    total_pages: int = Field(description="Total number of pages")

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.total_pages


def format_price(value: float) -> str:
    """Format a raw price as shown to the user."""
    return f"${value:.2f}"


class ProductDto(BaseModel):
    """Product as returned by the REST API. Unknown keys are ignored."""

    id: int
    title: str
    description: str | None = None
    category: str | None = None
    price: float
    brand: str | None = None
    thumbnail: str | None = None
    images: list[str] = Field(default_factory=list)

    def to_product(self) -> Product:
        """Map to the grid model."""
        return Product(
            id=self.id,
            name=self.title,
            brand=self.brand or "Unknown",
            price=format_price(self.price),
            thumbnail=self.thumbnail or "",
        )

    def to_product_detail(self) -> ProductDetail:
        """Map to the detail model."""
        return ProductDetail(
            id=self.id,
            name=self.title,
            brand=self.brand or "Unknown",
            price=format_price(self.price),
            thumbnail=self.thumbnail or "",
            description=self.description,
            category=self.category,
            images=tuple(self.images),
        )


class ProductsResponseDto(BaseModel):
    """Response of ``GET /products?limit=&skip=``."""

    products: list[ProductDto] = Field(default_factory=list)
    total: int
    skip: int
    limit: int

    def to_page(self) -> Page:
        """Derive page numbers from the offset window.

        A zero ``limit`` cannot be divided into pages; it maps to page 1 of 0
        so the browser stops paginating.
        """
        if self.limit <= 0:
            current_page, total_pages = 1, 0
        else:
            current_page = self.skip // self.limit + 1
            total_pages = math.ceil(self.total / self.limit)

        return Page(
            items=tuple(dto.to_product() for dto in self.products),
            current_page=current_page,
            total_pages=total_pages,
        )
