"""
Encode Request Schema
=====================

Validated form of the positional invocation parameters.

Invocation Contract:
    <video> <audio> <output> <width> <height> <fps> <threshold> <max_frames> <start_url>

Rules:
    - width/height must fit the u16 header fields and be non-zero
    - threshold is an 8-bit gray level (inclusive)
    - max_frames of 0 means unlimited and must fit the u32 frame_count field
    - fps is accepted as given; non-positive rates fall back to 30.0 downstream
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


U16_MAX = 0xFFFF
U32_MAX = 0xFFFFFFFF

# Rate used when the requested fps is missing or non-positive
DEFAULT_FPS = 30.0


class EncodeRequest(BaseModel):
    """
    Parameters for one encode run.

    Attributes:
        video_path: Input video, handed to the frame source untouched
        audio_path: Audio file embedded byte-for-byte
        output_path: Destination PDF
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Sampling frame rate
        threshold: Gray level at or below which a pixel is dark
        max_frames: Frame bound (0 = unlimited)
        start_url: Target of the START link annotation
    """

    video_path: Path = Field(..., description="Input video path")
    audio_path: Path = Field(..., description="Input audio path")
    output_path: Path = Field(..., description="Output PDF path")

    width: int = Field(..., ge=1, le=U16_MAX, description="Frame width (pixels)")
    height: int = Field(..., ge=1, le=U16_MAX, description="Frame height (pixels)")
    fps: float = Field(..., description="Frame rate (non-positive = 30.0)")
    threshold: int = Field(..., ge=0, le=255, description="Dark threshold (inclusive)")
    max_frames: int = Field(
        default=0,
        ge=0,
        le=U32_MAX,
        description="Maximum frames to encode (0 = unlimited)",
    )
    start_url: str = Field(..., description="URL opened by the START link")

    @property
    def frame_limit(self) -> Optional[int]:
        """max_frames as an optional bound."""
        return self.max_frames or None
