"""
Resilience Module - Core Resilience Components

COMPONENTS:
===========
- RetryPolicy: immutable retry/backoff configuration
- RetryExecutor: runs one cache operation with bounded retries (tenacity)
"""

from .retry import RetryExecutor, RetryPolicy

__all__ = [
    "RetryPolicy",
    "RetryExecutor",
]
