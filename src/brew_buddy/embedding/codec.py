"""Vector blob codec: N float32 values as 4*N little-endian bytes, no header."""

from __future__ import annotations

import struct
from collections.abc import Sequence

FLOAT32_SIZE = 4


class VectorDecodeError(ValueError):
    """Blob length is not a whole number of float32 values."""


class VectorEncodeError(ValueError):
    """Vector holds a value that cannot be stored as float32."""


def encode_vector(vector: Sequence[float]) -> bytes:
    try:
        return struct.pack(f"<{len(vector)}f", *vector)
    except (struct.error, OverflowError) as error:
        raise VectorEncodeError(f"Cannot encode vector as float32: {error}") from error


def decode_vector(blob: bytes) -> list[float]:
    if len(blob) % FLOAT32_SIZE != 0:
        raise VectorDecodeError(
            f"Invalid byte length for float32 vector: {len(blob)} is not a multiple of 4",
        )
    return list(struct.unpack(f"<{len(blob) // FLOAT32_SIZE}f", blob))
