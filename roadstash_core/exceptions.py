"""RoadStash Exceptions - Cache Error Hierarchy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base class for all cache errors."""


class InvalidKeyError(CacheError, ValueError):
    """Raised when a cache key is empty, too long or contains reserved characters."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid cache key {key!r}: {reason}")


class CompressionError(CacheError):
    """Raised when a compressed payload cannot be inflated in strict mode."""


class UnsupportedDriverError(CacheError, ValueError):
    """Raised for unknown drivers or store names."""


class AtomicCounterRequiredError(CacheError):
    """Raised when counters require native atomics the backend does not offer."""


__all__ = [
    "CacheError",
    "InvalidKeyError",
    "CompressionError",
    "UnsupportedDriverError",
    "AtomicCounterRequiredError",
]
