"""RoadStash Record - Persisted Value Envelope.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Record:
    """The unit a storage backend persists per key.

    Attributes:
        value: Application value
        expiry: Absolute unix timestamp in seconds, None for no expiry
    """

    value: Any
    expiry: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        """Check expiry against a unix timestamp."""
        return self.expiry is not None and self.expiry <= now

    def remaining_ttl(self, now: float) -> Optional[float]:
        """Seconds until expiry, None when the record never expires."""
        if self.expiry is None:
            return None
        return self.expiry - now

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "expiry": self.expiry}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Create from envelope mapping.

        Raises:
            ValueError: If the mapping is not a record envelope
        """
        if not isinstance(data, dict) or "value" not in data:
            raise ValueError("Not a record envelope")
        expiry = data.get("expiry")
        return cls(value=data["value"], expiry=float(expiry) if expiry is not None else None)


__all__ = ["Record"]
