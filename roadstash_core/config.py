"""RoadStash Config - Cache and Store Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from roadstash_core.exceptions import UnsupportedDriverError

DRIVERS = ("file", "redis", "memcached", "memory")


@dataclass
class StoreConfig:
    """Configuration of one named store.

    Attributes:
        name: Store name
        driver: Backend driver (file, redis, memcached, memory)
        options: Driver options such as path, max_items, prefix,
            compression_enabled, compression_threshold, eviction_policy
    """

    name: str
    driver: str
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.driver not in DRIVERS:
            raise UnsupportedDriverError(
                f"Unsupported cache driver {self.driver!r} for store {self.name!r}; "
                f"expected one of {', '.join(DRIVERS)}"
            )


@dataclass
class CacheConfig:
    """Cache configuration.

    Attributes:
        default: Name of the default store
        stores: Named store configurations
        require_atomic_counters: Refuse counters on backends without native atomics
    """

    default: str = "file"
    stores: Dict[str, StoreConfig] = field(default_factory=dict)
    require_atomic_counters: bool = False

    def store(self, name: Optional[str] = None) -> StoreConfig:
        """Get a store configuration by name.

        Args:
            name: Store name, defaults to the default store

        Raises:
            UnsupportedDriverError: If the store is not configured
        """
        name = name or self.default
        if name not in self.stores:
            raise UnsupportedDriverError(f"Cache store {name!r} is not configured")
        return self.stores[name]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheConfig":
        """Create from a mapping.

        Example:
            CacheConfig.from_dict({
                "default": "file",
                "stores": {
                    "file": {"driver": "file", "path": "/tmp/cache"},
                    "redis": {"driver": "redis", "prefix": "app:"},
                },
            })

        Raises:
            UnsupportedDriverError: If a store has no or an unknown driver
        """
        stores = {}
        for name, raw in (data.get("stores") or {}).items():
            options = dict(raw)
            driver = options.pop("driver", None)
            if driver is None:
                raise UnsupportedDriverError(
                    f"Cache store {name!r} must have a 'driver' key "
                    f"({', '.join(DRIVERS)})"
                )
            stores[name] = StoreConfig(name=name, driver=driver, options=options)

        default = data.get("default") or next(iter(stores), "file")
        return cls(
            default=default,
            stores=stores,
            require_atomic_counters=bool(data.get("require_atomic_counters", False)),
        )


__all__ = ["CacheConfig", "StoreConfig", "DRIVERS"]
