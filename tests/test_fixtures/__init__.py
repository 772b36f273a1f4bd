"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, InMemoryPipeline, InMemoryRedis
from .product_factory import ProductFactory

__all__ = ["CacheTestFactory", "InMemoryRedis", "InMemoryPipeline", "ProductFactory"]
