"""
Product Models

Pydantic models shared by the repository, the cache engine, the catalog
service and the HTTP routes.
"""

import math

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Product(BaseModel):
    """
    A catalog product as stored in persistence and in the cache.

    Identifiers are positive integers assigned by the repository.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0, description="Product identifier")
    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, description="Unit price")
    category: str = Field(..., min_length=1, description="Product category")

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("price")
    @classmethod
    def finite_price(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("price must be a finite number")
        return v


class ProductCreate(BaseModel):
    """Payload for creating a product."""

    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ProductUpdate(BaseModel):
    """
    Partial update payload.

    Only fields explicitly provided are applied; see ``changes()``.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    price: float | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, min_length=1, max_length=100)

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    def changes(self) -> dict:
        """Fields the caller actually supplied, without None values."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ProductFilter(BaseModel):
    """Optional list filters: exact category, case-insensitive name substring."""

    category: str | None = None
    name: str | None = None


class ProductQuery(BaseModel):
    """Pagination and filtering for a product list request."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    category: str | None = None
    name: str | None = None

    @property
    def filters(self) -> ProductFilter:
        return ProductFilter(category=self.category, name=self.name)

    def fingerprint(self) -> str:
        """
        Deterministic list cache key suffix.

        Example: page=1, limit=10, category="Tools" -> "1:10:Tools:"
        """
        return f"{self.page}:{self.limit}:{self.category or ''}:{self.name or ''}"


class ProductListResponse(BaseModel):
    """One page of products plus pagination metadata."""

    products: list[Product]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0
