"""Fixed-width vector encoding for the store.

Vectors are stored as consecutive little-endian IEEE-754 float32 values,
4 bytes per component, with no header. Components that are not exactly
representable are rounded to the nearest float32.
"""

from collections.abc import Sequence

import numpy as np

from vaultgraph.core.errors import StoreError
from vaultgraph.index.models import Vector

_DTYPE = np.dtype("<f4")


def encode_vector(vector: Sequence[float] | np.ndarray) -> bytes:
    return np.asarray(vector, dtype=_DTYPE).tobytes()


def decode_vector(data: bytes) -> Vector:
    """Decode a stored buffer into a native float32 array.

    Raises:
        StoreError: If the buffer length is not a multiple of 4.
    """
    if len(data) % _DTYPE.itemsize:
        raise StoreError.corrupt_vector(len(data))
    # frombuffer returns a read-only view; copy into native byte order
    return np.frombuffer(data, dtype=_DTYPE).astype(np.float32)
