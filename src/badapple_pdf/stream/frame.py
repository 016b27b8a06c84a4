"""
Frame Data Model
=================

Internal frame representation for the encoding pipeline.

This module defines the typed RawFrame class that is used as the interface
between the frame source and the codec stages.

Design Rules:
    - This is the ONLY frame format passed to the codec
    - Holds exactly width * height 8-bit gray samples
    - Produced by the frame source and consumed once
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class RawFrame:
    """
    One fully-read grayscale frame.

    Attributes:
        index: Zero-based position in the source sequence
        width: Frame width in pixels
        height: Frame height in pixels
        samples: uint8 array of shape (height, width), 0=black..255=white
    """

    index: int
    width: int
    height: int
    samples: np.ndarray

    @classmethod
    def from_bytes(cls, index: int, width: int, height: int, data: bytes) -> "RawFrame":
        """Wrap a raw gray buffer of exactly width * height bytes."""
        if len(data) != width * height:
            raise ValueError(
                f"frame {index}: expected {width * height} samples, got {len(data)}"
            )
        samples = np.frombuffer(data, dtype=np.uint8).reshape(height, width)
        return cls(index=index, width=width, height=height, samples=samples)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the samples."""
        return (
            f"RawFrame(index={self.index}, "
            f"width={self.width}, "
            f"height={self.height})"
        )
