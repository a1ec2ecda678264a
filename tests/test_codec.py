from __future__ import annotations

import struct

import allure
import pytest

from brew_buddy.embedding.codec import (
    VectorDecodeError,
    VectorEncodeError,
    decode_vector,
    encode_vector,
)

pytestmark = [
    allure.epic("Vibe Search"),
    allure.feature("Vector Codec"),
]


def test_encode_vector_is_little_endian_float32_without_header() -> None:
    blob = encode_vector([1.0, -2.5, 0.125])

    assert len(blob) == 12
    assert blob[:4] == struct.pack("<f", 1.0)
    assert blob == b"\x00\x00\x80\x3f\x00\x00\x20\xc0\x00\x00\x00\x3e"


def test_decode_vector_restores_float32_values() -> None:
    values = [0.1, 0.2, -0.3]

    decoded = decode_vector(encode_vector(values))

    assert decoded == pytest.approx(values, rel=1e-6)


def test_empty_vector_encodes_to_empty_blob() -> None:
    assert encode_vector([]) == b""
    assert decode_vector(b"") == []


@pytest.mark.parametrize("length", [1, 3, 7])
def test_decode_rejects_partial_floats(length: int) -> None:
    with pytest.raises(VectorDecodeError, match="multiple of 4"):
        decode_vector(b"\x00" * length)


def test_vector_decode_error_is_a_value_error() -> None:
    assert issubclass(VectorDecodeError, ValueError)


@pytest.mark.parametrize("vector", [[1e300], ["0.5"]])
def test_encode_rejects_values_outside_float32(vector: list) -> None:
    with pytest.raises(VectorEncodeError, match="float32"):
        encode_vector(vector)
