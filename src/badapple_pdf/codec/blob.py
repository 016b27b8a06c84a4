"""
Blob Assembler
==============

Builds the final bitstream: a 10-byte header followed by the first packed
frame and then one XOR diff per subsequent frame.

Design Rules:
    - The body is buffered and the header is serialized once, at finalize
      time, with the final frame_count (no placeholder is ever exposed)
    - Every body frame has the same length, ceil(width * height / 8)
    - fps is stored as round(fps * 100) clamped to [1, 65535]; a missing
      or non-positive rate is treated as 30.0 first

The decoder half (decode_blob) mirrors what a player does with the
attachment: validate the header, check the body length and re-accumulate
the diffs.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from badapple_pdf.codec.delta import reconstruct_frames
from badapple_pdf.codec.packing import packed_length, unpack_bits
from badapple_pdf.models.header import BLOB_HEADER_SIZE, BlobHeader
from badapple_pdf.models.request import DEFAULT_FPS, U16_MAX, U32_MAX


logger = logging.getLogger(__name__)


class BlobFormatError(ValueError):
    """Raised when a blob cannot be parsed."""
    pass


def encode_fps(fps: Optional[float]) -> int:
    """
    Encode a frame rate as the u16 fps_x100 header field.

    Examples:
        encode_fps(29.97) -> 2997
        encode_fps(0) -> 3000
        encode_fps(1000) -> 65535
    """
    if fps is None or not fps > 0:
        fps = DEFAULT_FPS

    scaled = fps * 100.0
    if scaled >= U16_MAX:
        return U16_MAX
    return max(1, math.floor(scaled + 0.5))


class BlobAssembler:
    """
    Accumulates encoded frames and serializes the finished blob.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        fps_x100: Encoded frame rate
        frame_length: Bytes per packed frame

    Example:
        assembler = BlobAssembler(width=80, height=60, fps=30.0)
        for chunk in encoded_frames:
            assembler.append(chunk)
        blob = assembler.finalize()
    """

    def __init__(self, width: int, height: int, fps: Optional[float]) -> None:
        self.width = width
        self.height = height
        self.fps_x100 = encode_fps(fps)
        self.frame_length = packed_length(width, height)

        # Validates the dimensions up front
        BlobHeader(width=width, height=height, fps_x100=self.fps_x100)

        self._body = bytearray()
        self._frame_count: int = 0
        self._finalized: bool = False

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def body_size(self) -> int:
        return len(self._body)

    def append(self, frame: bytes) -> None:
        """
        Append one encoded frame (raw first frame or diff).

        Raises:
            ValueError: If the frame length is wrong or frame_count would overflow
            RuntimeError: If the blob was already finalized
        """
        if self._finalized:
            raise RuntimeError("blob already finalized")
        if len(frame) != self.frame_length:
            raise ValueError(
                f"frame must be {self.frame_length} bytes, got {len(frame)}"
            )
        if self._frame_count >= U32_MAX:
            raise ValueError("frame_count exceeds u32 range")

        self._body += frame
        self._frame_count += 1

    def header(self) -> BlobHeader:
        """Header describing the frames appended so far."""
        return BlobHeader(
            width=self.width,
            height=self.height,
            fps_x100=self.fps_x100,
            frame_count=self._frame_count,
        )

    def finalize(self) -> bytes:
        """Serialize header + body. The assembler is closed afterwards."""
        self._finalized = True
        blob = self.header().to_bytes() + bytes(self._body)
        logger.debug(
            f"Blob finalized: {self._frame_count} frames, {len(blob)} bytes"
        )
        return blob


@dataclass(frozen=True)
class DecodedBlob:
    """
    Parsed bitstream.

    Attributes:
        header: Parsed header
        frames: Reconstructed packed frames (diffs already applied)
    """

    header: BlobHeader
    frames: List[bytes]

    def bitmap(self, index: int) -> np.ndarray:
        """Frame `index` as a (height, width) array of 0/1."""
        count = self.header.width * self.header.height
        bits = unpack_bits(self.frames[index], count)
        return bits.reshape(self.header.height, self.header.width)


def decode_blob(data: bytes) -> DecodedBlob:
    """
    Parse and reconstruct a blob.

    Args:
        data: Blob bytes (trailing bytes beyond the declared body are ignored)

    Returns:
        DecodedBlob with the original packed frames

    Raises:
        BlobFormatError: If the header is invalid or the body is truncated
    """
    try:
        header = BlobHeader.from_bytes(data)
    except ValueError as e:
        raise BlobFormatError(f"invalid blob header: {e}") from e

    end = BLOB_HEADER_SIZE + header.body_length
    if len(data) < end:
        raise BlobFormatError(
            f"blob truncated: expected {end} bytes, got {len(data)}"
        )

    step = header.packed_length
    body = [data[offset:offset + step] for offset in range(BLOB_HEADER_SIZE, end, step)]
    return DecodedBlob(header=header, frames=reconstruct_frames(body))
