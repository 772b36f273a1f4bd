"""
In-Memory Product Repository

Default persistence adapter implementing the ProductRepository protocol.

Semantics mirror a relational product table:
- identifiers are assigned from an auto-increment counter and never reused
- product names are unique (UniqueViolationError on duplicates)
- list filtering: exact category match, case-insensitive name substring
- list ordering: newest first (id descending)

An asyncio.Lock serializes writers so concurrent requests cannot assign
the same identifier or slip a duplicate name past the uniqueness check.
"""

import asyncio

from src.catalog.models.product import Product, ProductCreate, ProductFilter
from src.core.exceptions import UniqueViolationError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class InMemoryProductRepository:
    """Process-local product store."""

    def __init__(self, products: list[Product] | None = None):
        self._products: dict[int, Product] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()
        for product in products or []:
            self._products[product.id] = product
            self._next_id = max(self._next_id, product.id + 1)

    def _name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        lowered = name.lower()
        return any(
            p.name.lower() == lowered and p.id != exclude_id for p in self._products.values()
        )

    async def create(self, data: ProductCreate) -> Product:
        async with self._lock:
            if self._name_taken(data.name):
                raise UniqueViolationError(
                    f"duplicate key value violates unique constraint on name: {data.name}",
                    field="name",
                    value=data.name,
                )
            product = Product(id=self._next_id, **data.model_dump())
            self._products[product.id] = product
            self._next_id += 1

        logger.debug("Product row inserted", product_id=product.id)
        return product

    async def find_by_id(self, product_id: int) -> Product | None:
        return self._products.get(product_id)

    async def find_many(
        self, filters: ProductFilter, page: int, limit: int
    ) -> tuple[list[Product], int]:
        matches = [p for p in self._products.values() if self._matches(p, filters)]
        matches.sort(key=lambda p: p.id, reverse=True)
        offset = (page - 1) * limit
        return matches[offset:offset + limit], len(matches)

    @staticmethod
    def _matches(product: Product, filters: ProductFilter) -> bool:
        if filters.category and product.category != filters.category:
            return False
        if filters.name and filters.name.lower() not in product.name.lower():
            return False
        return True

    async def update(self, product_id: int, changes: dict) -> Product | None:
        async with self._lock:
            current = self._products.get(product_id)
            if current is None:
                return None
            new_name = changes.get("name")
            if new_name is not None and self._name_taken(new_name, exclude_id=product_id):
                raise UniqueViolationError(
                    f"duplicate key value violates unique constraint on name: {new_name}",
                    field="name",
                    value=new_name,
                )
            updated = Product.model_validate({**current.model_dump(), **changes})
            self._products[product_id] = updated

        logger.debug("Product row updated", product_id=product_id, fields=sorted(changes))
        return updated

    async def delete(self, product_id: int) -> int:
        async with self._lock:
            removed = self._products.pop(product_id, None)
        return 1 if removed is not None else 0

    async def count(self) -> int:
        return len(self._products)
