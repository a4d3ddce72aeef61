"""RoadStash Serializer - Record Envelope Serialization.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import pickle
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

Envelope = Dict[str, Any]


class Serializer(ABC):
    """Turns a record envelope into bytes and back.

    Backends hand over ``{"value": ..., "expiry": ...}`` and persist the
    result. A value the format cannot represent faithfully must raise from
    ``serialize`` (the backend then reports the write as failed) rather than
    be coerced into something that reads back different.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Name used in StorageConfig.serializer."""
        pass

    @abstractmethod
    def serialize(self, envelope: Envelope) -> bytes:
        """Encode an envelope.

        Raises:
            TypeError: If the value cannot be represented
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Envelope:
        """Decode bytes written by ``serialize``."""
        pass


class PickleSerializer(Serializer):
    """Pickle envelopes.

    Round-trips any picklable Python object. Never point a pickle store at
    data written by an untrusted party.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    @property
    def format_name(self) -> str:
        return "pickle"

    def serialize(self, envelope: Envelope) -> bytes:
        try:
            return pickle.dumps(envelope, protocol=self.protocol)
        except (pickle.PicklingError, AttributeError) as e:
            raise TypeError(f"Value is not picklable: {e}") from e

    def deserialize(self, data: bytes) -> Envelope:
        return pickle.loads(data)


class JSONSerializer(Serializer):
    """UTF-8 JSON envelopes.

    Human-readable and readable from other languages. Only JSON types are
    accepted: dict keys must be strings and tuples come back as lists.
    """

    @property
    def format_name(self) -> str:
        return "json"

    def serialize(self, envelope: Envelope) -> bytes:
        return json.dumps(envelope, separators=(",", ":")).encode("utf-8")

    def deserialize(self, data: bytes) -> Envelope:
        return json.loads(data.decode("utf-8"))


class MsgPackSerializer(Serializer):
    """MessagePack envelopes.

    Compact binary form. Non-string map keys (e.g. ints) survive; tuples
    come back as lists.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    def serialize(self, envelope: Envelope) -> bytes:
        return _msgpack().packb(envelope, use_bin_type=True)

    def deserialize(self, data: bytes) -> Envelope:
        return _msgpack().unpackb(data, raw=False, strict_map_key=False)


def _msgpack():
    try:
        import msgpack
    except ImportError:
        raise ImportError("msgpack package not installed. Run: pip install msgpack")
    return msgpack


class SerializerRegistry:
    """Serializers by format name."""

    DEFAULT_FORMAT = "pickle"

    def __init__(self):
        self._serializers: Dict[str, Serializer] = {}
        for serializer in (PickleSerializer(), JSONSerializer(), MsgPackSerializer()):
            self.register(serializer)

    def register(self, serializer: Serializer) -> None:
        """Register (or replace) the serializer for its format name."""
        self._serializers[serializer.format_name] = serializer

    def get(self, format_name: str) -> Serializer:
        """Get serializer by format.

        Raises:
            KeyError: If format not found
        """
        try:
            return self._serializers[format_name]
        except KeyError:
            raise KeyError(f"Unknown serializer format: {format_name}") from None


_registry = SerializerRegistry()


def get_serializer(format_name: Optional[str] = None) -> Serializer:
    """Get the shared serializer for a format, pickle when None."""
    return _registry.get(format_name or SerializerRegistry.DEFAULT_FORMAT)


def register_serializer(serializer: Serializer) -> None:
    """Make a custom format available to StorageConfig.serializer."""
    _registry.register(serializer)


__all__ = [
    "Serializer",
    "PickleSerializer",
    "JSONSerializer",
    "MsgPackSerializer",
    "SerializerRegistry",
    "get_serializer",
    "register_serializer",
]
