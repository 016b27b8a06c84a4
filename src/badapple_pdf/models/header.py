"""
Blob Header
===========

The fixed 10-byte header that prefixes every bitstream.

Wire Layout (little-endian):
    offset 0..2   width        u16
    offset 2..4   height       u16
    offset 4..6   fps_x100     u16  (rate x 100, rounded, clamped to [1, 65535])
    offset 6..10  frame_count  u32

Example:
    header = BlobHeader(width=160, height=120, fps_x100=2997, frame_count=5)
    header.to_bytes().hex(" ")  # 'a0 00 78 00 b5 0b 05 00 00 00'
"""

import struct

from pydantic import BaseModel, Field

from badapple_pdf.models.request import U16_MAX, U32_MAX


_HEADER_STRUCT = struct.Struct("<HHHI")

BLOB_HEADER_SIZE = _HEADER_STRUCT.size


class BlobHeader(BaseModel):
    """
    Bitstream header.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        fps_x100: Frame rate multiplied by 100
        frame_count: Number of frames in the body
    """

    width: int = Field(..., ge=1, le=U16_MAX)
    height: int = Field(..., ge=1, le=U16_MAX)
    fps_x100: int = Field(..., ge=1, le=U16_MAX)
    frame_count: int = Field(default=0, ge=0, le=U32_MAX)

    @property
    def fps(self) -> float:
        """Decoded frame rate."""
        return self.fps_x100 / 100.0

    @property
    def packed_length(self) -> int:
        """Bytes per packed frame."""
        return (self.width * self.height + 7) // 8

    @property
    def body_length(self) -> int:
        """Expected body size in bytes."""
        return self.packed_length * self.frame_count

    def to_bytes(self) -> bytes:
        return _HEADER_STRUCT.pack(
            self.width, self.height, self.fps_x100, self.frame_count
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "BlobHeader":
        """
        Parse the first 10 bytes of a blob.

        Raises:
            ValueError: If data is shorter than the header or a field is
                out of range (pydantic.ValidationError is a ValueError)
        """
        if len(data) < BLOB_HEADER_SIZE:
            raise ValueError(
                f"blob too small for header: {len(data)} < {BLOB_HEADER_SIZE} bytes"
            )
        width, height, fps_x100, frame_count = _HEADER_STRUCT.unpack_from(data)
        return cls(
            width=width,
            height=height,
            fps_x100=fps_x100,
            frame_count=frame_count,
        )
