"""
Core Interfaces Module

This module provides abstract interfaces and protocols for core components,
enabling dependency injection, testability, and loose coupling.

Components:
-----------
- **repository.py**: ProductRepository protocol for persistence adapters

Architecture:
------------
Interfaces follow the Protocol pattern (PEP 544) for structural subtyping:
- Runtime type checking with @runtime_checkable
- No inheritance required
- Easy mocking for tests
"""

from src.core.interfaces.repository import ProductRepository

__all__ = [
    "ProductRepository",
]
