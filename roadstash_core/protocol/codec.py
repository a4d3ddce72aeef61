"""RoadStash Codec - Threshold-Gated Payload Compression.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import zlib

from roadstash_core.exceptions import CompressionError

logger = logging.getLogger(__name__)

COMPRESSION_MARKER = b"C:"
DEFAULT_THRESHOLD = 10240
COMPRESSION_LEVEL = 6


class CompressionCodec:
    """Compresses serialized records above a byte threshold.

    Compressed payloads are zlib streams prefixed with the two byte marker
    ``C:``. Payloads without the marker are passed through untouched, so
    records written with compression disabled stay readable after it is
    turned on (and vice versa).

    A corrupt compressed payload is handled according to ``strict``:
    by default the raw bytes are returned and a warning logged (reads never
    break); with ``strict=True`` a ``CompressionError`` is raised.

    Example:
        codec = CompressionCodec(threshold=1024)
        stored = codec.compress(payload)
        assert codec.decompress(stored) == payload
    """

    def __init__(
        self,
        enabled: bool = True,
        threshold: int = DEFAULT_THRESHOLD,
        strict: bool = False,
    ):
        """Initialize codec.

        Args:
            enabled: Compress payloads at or above the threshold
            threshold: Minimum payload size in bytes
            strict: Raise on corrupt payloads instead of passing them through
        """
        if threshold < 0:
            raise ValueError("Compression threshold must be non-negative")
        self.enabled = enabled
        self.threshold = threshold
        self.strict = strict

    def compress(self, data: bytes) -> bytes:
        """Compress data if enabled and large enough.

        Args:
            data: Serialized record

        Returns:
            Marker-prefixed compressed bytes, or the input unchanged
        """
        if not self.enabled or len(data) < self.threshold:
            return data
        return COMPRESSION_MARKER + zlib.compress(data, COMPRESSION_LEVEL)

    def decompress(self, data: bytes) -> bytes:
        """Decompress data carrying the compression marker.

        Args:
            data: Stored payload

        Returns:
            Inflated bytes, or the input unchanged when not compressed

        Raises:
            CompressionError: Corrupt payload in strict mode
        """
        if not self.is_compressed(data):
            return data

        try:
            return zlib.decompress(data[len(COMPRESSION_MARKER):])
        except zlib.error as e:
            if self.strict:
                raise CompressionError(f"Corrupt compressed payload: {e}") from e
            logger.warning(f"Decompression failed, returning raw payload: {e}")
            return data

    @staticmethod
    def is_compressed(data: bytes) -> bool:
        """Check for the compression marker."""
        return data[:len(COMPRESSION_MARKER)] == COMPRESSION_MARKER

    def __repr__(self) -> str:
        return (
            f"CompressionCodec(enabled={self.enabled}, "
            f"threshold={self.threshold}, strict={self.strict})"
        )


__all__ = ["CompressionCodec", "COMPRESSION_MARKER", "DEFAULT_THRESHOLD"]
