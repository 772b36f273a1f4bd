"""
Configuration Module

Centralized, type-safe configuration management for the catalog service.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Key prefixes, stage identifiers, enums and retry defaults

Usage:
------
```python
from src.core.config import get_settings
from src.core.config.constants import Stage, REDIS_KEY_PRODUCT_HASH

settings = get_settings()
ttl = settings.cache.CACHE_PRODUCT_TTL
```
"""

from .settings import Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
