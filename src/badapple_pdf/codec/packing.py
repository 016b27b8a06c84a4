"""
Bit Packer
==========

Dense 1-bit frame packing, 8 pixels per byte, most-significant bit first.

Wire contract:
    bit i of the bitmap -> byte i // 8, bit position 7 - (i % 8)
    trailing pad bits of the final byte are always 0

Any decoder of the bitstream must use the identical mapping.
"""

import numpy as np


def packed_length(width: int, height: int) -> int:
    """Bytes needed for one packed width x height frame."""
    return (width * height + 7) // 8


def pack_bits(bits: np.ndarray) -> bytes:
    """
    Pack a {0, 1} bitmap into bytes, MSB first.

    Args:
        bits: Array of 0/1 values, any shape (flattened row-major)

    Returns:
        ceil(n / 8) bytes with zero padding
    """
    flat = np.asarray(bits, dtype=np.uint8).reshape(-1)
    return np.packbits(flat != 0, bitorder="big").tobytes()


def unpack_bits(packed: bytes, count: int) -> np.ndarray:
    """
    Inverse of pack_bits.

    Args:
        packed: Packed bytes
        count: Number of meaningful bits (padding is discarded)

    Returns:
        uint8 array of length count holding 0 or 1
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if count > len(packed) * 8:
        raise ValueError(
            f"cannot unpack {count} bits from {len(packed)} bytes"
        )
    buf = np.frombuffer(bytes(packed), dtype=np.uint8)
    return np.unpackbits(buf, count=count, bitorder="big")
