"""
Persistence Module

Product repository adapters implementing the ProductRepository protocol.
"""

from src.infrastructure.persistence.memory_repository import InMemoryProductRepository

__all__ = ["InMemoryProductRepository"]
