"""
Product Repository Protocol

This module defines the abstract protocol for product persistence, the
source of truth the catalog service reads through and writes through.

Architectural Decision: Protocol-based abstraction
- The catalog service depends on this contract, never on a concrete store
- Facilitates testing with in-memory or mock implementations
- Type-safe interface with runtime checking
"""

from typing import Protocol, runtime_checkable

from src.catalog.models.product import Product, ProductCreate, ProductFilter


@runtime_checkable
class ProductRepository(Protocol):
    """
    Protocol defining the persistence contract for products.

    Implementations:
    - InMemoryProductRepository: default process-local adapter

    Error contract:
    - UniqueViolationError when a create/update would duplicate a product name
    - any other exception is treated as a generic persistence failure
    """

    async def create(self, data: ProductCreate) -> Product:
        """
        Persist a new product and assign its identifier.

        Raises:
            UniqueViolationError: If a product with the same name exists
        """
        ...

    async def find_by_id(self, product_id: int) -> Product | None:
        """Return the product or None if it does not exist."""
        ...

    async def find_many(
        self, filters: ProductFilter, page: int, limit: int
    ) -> tuple[list[Product], int]:
        """
        Return one page of matching products and the total match count.

        Args:
            filters: Category (exact) and name (substring) filters
            page: 1-based page number
            limit: Page size
        """
        ...

    async def update(self, product_id: int, changes: dict) -> Product | None:
        """Apply a partial update. Returns None if the product does not exist."""
        ...

    async def delete(self, product_id: int) -> int:
        """Delete a product. Returns the number of rows removed (0 or 1)."""
        ...

    async def count(self) -> int:
        """Total number of products."""
        ...
