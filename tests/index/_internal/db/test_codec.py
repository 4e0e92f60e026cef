"""Tests for the fixed-width vector codec."""

import struct

import numpy as np
import pytest

from vaultgraph.core.errors import StoreError
from vaultgraph.index._internal.db.codec import decode_vector, encode_vector


class TestVectorCodec:
    """Encoding layout and round-trip."""

    def test_layout_is_little_endian_float32(self) -> None:
        """Four bytes per component, little-endian, no header."""
        data = encode_vector([1.0, -2.5, 0.0])

        assert data == struct.pack("<3f", 1.0, -2.5, 0.0)

    def test_round_trip_is_bit_identical(self) -> None:
        """Finite float32 values survive encode/decode exactly."""
        rng = np.random.default_rng(7)
        vector = rng.standard_normal(768).astype(np.float32)

        decoded = decode_vector(encode_vector(vector))

        assert decoded.dtype == np.float32
        assert len(decoded) == 768
        assert decoded.tobytes() == vector.tobytes()

    def test_python_floats_rounded_to_float32(self) -> None:
        """Inputs are rounded to the nearest float32."""
        decoded = decode_vector(encode_vector([0.1, 1e-3]))

        assert decoded.tolist() == pytest.approx([0.1, 1e-3], rel=1e-6)

    def test_empty_vector(self) -> None:
        assert encode_vector([]) == b""
        assert len(decode_vector(b"")) == 0

    def test_decoded_vector_is_writable(self) -> None:
        """Decoding copies out of the immutable buffer."""
        decoded = decode_vector(encode_vector([1.0, 2.0]))
        decoded[0] = 5.0

        assert decoded[0] == 5.0

    def test_truncated_buffer_rejected(self) -> None:
        """A length that is not a multiple of 4 is corrupt."""
        with pytest.raises(StoreError):
            decode_vector(b"\x00\x00\x80\x3f\x00")
