"""Protocol module - Serialization and compression codecs."""

from roadstash_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
    get_serializer,
    register_serializer,
)
from roadstash_core.protocol.codec import CompressionCodec, COMPRESSION_MARKER

__all__ = [
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "get_serializer",
    "register_serializer",
    "CompressionCodec",
    "COMPRESSION_MARKER",
]
