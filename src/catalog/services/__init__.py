"""
Catalog Services

ProductService orchestrates persistence and cache; ProductEventService is
the product notification bus.
"""

from src.catalog.services.product_events import ProductEvent, ProductEventService
from src.catalog.services.product_service import ProductService

__all__ = [
    "ProductService",
    "ProductEventService",
    "ProductEvent",
]
