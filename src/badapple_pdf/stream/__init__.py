"""
Stream Module
=============

Raw frame ingestion from the external video decoder.

This module provides the ingestion layer for badapple-pdf:
    - RawFrame: Typed frame data model (internal representation)
    - read_raw_frames: Fixed-size frame reader over any byte stream
    - FrameSourceProcess: Scoped ffmpeg subprocess with exit-status check

Example:
    from badapple_pdf.stream import FrameSourceProcess, build_ffmpeg_command

    command = build_ffmpeg_command("in.mp4", width=80, height=60, fps=30.0)
    with FrameSourceProcess(command, 80, 60) as source:
        for frame in source.frames():
            process(frame)
        source.finish()
"""

from badapple_pdf.stream.frame import RawFrame
from badapple_pdf.stream.source import (
    FrameSourceMetrics,
    FrameSourceProcess,
    SourceProcessError,
    build_ffmpeg_command,
    read_raw_frames,
)


__all__ = [
    "RawFrame",
    "FrameSourceMetrics",
    "FrameSourceProcess",
    "SourceProcessError",
    "build_ffmpeg_command",
    "read_raw_frames",
]
