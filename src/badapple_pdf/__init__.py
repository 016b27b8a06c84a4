"""
badapple-pdf
============

Encode a video clip into a 1-bit XOR-delta bitstream and package it, with an
untouched audio track, as named attachments of a single-page PDF carrying a
clickable START link.

Components:
    - stream: Raw grayscale frame source (ffmpeg subprocess)
    - codec: Thresholding, bit packing, delta coding and blob assembly
    - container: PDF object graph, serializer and artifact reader
    - pipeline: End-to-end orchestration

Example:
    from badapple_pdf.models import EncodeRequest
    from badapple_pdf.pipeline import run

    result = run(EncodeRequest(
        video_path="badapple.mp4",
        audio_path="badapple.ogg",
        output_path="out/badapple.pdf",
        width=80,
        height=60,
        fps=30,
        threshold=128,
        max_frames=0,
        start_url="https://example.org/play.html",
    ))
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
