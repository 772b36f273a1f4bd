"""
System Constants and Enumerations

This module defines constants and enumerations shared by the cache engine,
the async cache façade and the catalog service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for key prefixes and magic numbers
- Key prefixes are stable: invalidation rebuilds keys independently of writes
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used as the ``stage`` field of log events.

    Format: {PREFIX}.{STEP}_{DESCRIPTIVE_NAME}
    """

    # Connection lifecycle
    REDIS_CONNECT = "REDIS.1_CONNECT"
    REDIS_READY = "REDIS.2_READY"
    REDIS_ERROR = "REDIS.3_ERROR"
    REDIS_END = "REDIS.4_END"

    # Cache engine
    CACHE_WRITE = "CACHE.1_WRITE"
    CACHE_READ = "CACHE.2_READ"
    CACHE_LIST_WRITE = "CACHE.3_LIST_WRITE"
    CACHE_LIST_READ = "CACHE.4_LIST_READ"
    CACHE_INVALIDATE = "CACHE.5_INVALIDATE"
    CACHE_LIST_INVALIDATE = "CACHE.6_LIST_INVALIDATE"
    CACHE_FIELD_UPDATE = "CACHE.7_FIELD_UPDATE"
    CACHE_HEALTH = "CACHE.8_HEALTH"

    # Cross-cutting
    RETRY = "R_RETRY_LOGIC"
    ASYNC_CACHE = "AC_ASYNC_CACHE"
    EVENTS = "EV_PRODUCT_EVENTS"

    # Catalog service
    CATALOG_CREATE = "P.1_CREATE"
    CATALOG_READ = "P.2_READ"
    CATALOG_LIST = "P.3_LIST"
    CATALOG_UPDATE = "P.4_UPDATE"
    CATALOG_DELETE = "P.5_DELETE"
    CATALOG_SEARCH = "P.6_SEARCH"
    CATALOG_HEALTH = "P.7_HEALTH"


class HealthStatus(str, Enum):
    """Health states reported by the cache engine and the catalog service."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class ProductEventType(str, Enum):
    """Event kinds published on the product notification bus."""

    CREATED = "product.created"
    UPDATED = "product.updated"
    DELETED = "product.deleted"
    VIEWED = "product.viewed"


# ============================================================================
# Redis Key Prefixes
# ============================================================================

# String-mode single products (<prefix>:single:<id>) and lists (<prefix>:list:<fp>)
REDIS_KEY_PRODUCT = "product"

# Hash-mode single products (<prefix>:<id>)
REDIS_KEY_PRODUCT_HASH = "products_hash"

# Legacy list namespace, still swept on list invalidation
REDIS_KEY_PRODUCT_LIST = "products_list"

# Disposable health probe keys
REDIS_KEY_HEALTH_CHECK = "health_check"

# Hash fields every cached product must carry
PRODUCT_HASH_REQUIRED_FIELDS = ("id", "name", "price", "category")
PRODUCT_HASH_TIMESTAMP_FIELD = "cachedAt"

# ============================================================================
# Retry Defaults
# ============================================================================

RETRY_MAX_RETRIES = 3
RETRY_INITIAL_DELAY = 0.1  # seconds
RETRY_BACKOFF_FACTOR = 2.0
RETRY_MAX_DELAY = 1.0  # seconds

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
