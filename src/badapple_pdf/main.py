"""
badapple-pdf Command Line
=========================

Entry points:

    badapple-pdf <video> <audio> <output> <width> <height> <fps> <threshold> <max_frames_or_0> <start_url>
        Encode the video into a 1-bit bitstream and write a PDF carrying it,
        the audio and a START link.

    badapple-pdf-inspect <artifact>
        Print the structure of a produced PDF (pages, attachments, blob
        header, link target).

Exit Status:
    0 - success
    1 - frame source, I/O or format failure (diagnostic on stderr)
    2 - missing or invalid arguments or config file (diagnostic on stderr)

Example:
    badapple-pdf badapple.mp4 badapple.ogg out/badapple.pdf 80 60 30 128 0 \\
        https://example.org/play.html
"""

import argparse
import logging
import sys
from typing import List, Optional

import yaml
from pydantic import ValidationError

from badapple_pdf.codec import BlobFormatError, decode_blob
from badapple_pdf.config import load_config, settings, setup_logging
from badapple_pdf.container import BITSTREAM_NAME, ContainerFormatError, PdfReader
from badapple_pdf.models import EncodeRequest
from badapple_pdf.pipeline import run
from badapple_pdf.stream import SourceProcessError


logger = logging.getLogger(__name__)


class ArgumentError(ValueError):
    """Raised when invocation parameters are out of range."""
    pass


# =============================================================================
# Encode
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="badapple-pdf",
        description="Pack a video as a 1-bit delta bitstream into a PDF attachment",
    )
    parser.add_argument("video", help="Input video file")
    parser.add_argument("audio", help="Audio file embedded unchanged (ogg)")
    parser.add_argument("output", help="Output PDF path")
    parser.add_argument("width", type=int, help="Frame width in pixels")
    parser.add_argument("height", type=int, help="Frame height in pixels")
    parser.add_argument("fps", type=float, help="Frame rate (<= 0 means 30)")
    parser.add_argument("threshold", type=int, help="Dark threshold 0-255 (inclusive)")
    parser.add_argument("max_frames", type=int, help="Maximum frames, 0 = unlimited")
    parser.add_argument("start_url", help="URL opened by the START button")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to badapple.yaml (default: search working directory)",
    )
    return parser


def parse_request(args: argparse.Namespace) -> EncodeRequest:
    """
    Validate parsed arguments.

    Raises:
        ArgumentError: If any value is out of range
    """
    try:
        return EncodeRequest(
            video_path=args.video,
            audio_path=args.audio,
            output_path=args.output,
            width=args.width,
            height=args.height,
            fps=args.fps,
            threshold=args.threshold,
            max_frames=args.max_frames,
            start_url=args.start_url,
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ArgumentError(problems) from e


def main(argv: Optional[List[str]] = None) -> int:
    """Encode entry point. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else settings
    except (yaml.YAMLError, ValueError, OSError) as e:
        print(f"{parser.prog}: error: invalid config {args.config}: {e}", file=sys.stderr)
        return 2
    setup_logging(config)

    try:
        request = parse_request(args)
    except ArgumentError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return 2

    try:
        result = run(request, config)
    except SourceProcessError as e:
        logger.error(f"failed to encode video frames: {e}")
        return 1
    except OSError as e:
        logger.error(f"I/O error: {e}")
        return 1

    logger.info(
        f"Done: {result.frame_count} frames, "
        f"{result.artifact_size} bytes -> {result.output_path}"
    )
    return 0


# =============================================================================
# Inspect
# =============================================================================

def inspect_main(argv: Optional[List[str]] = None) -> int:
    """Inspect entry point. Prints a report on stdout."""
    parser = argparse.ArgumentParser(
        prog="badapple-pdf-inspect",
        description="Show pages, attachments, blob header and link of a PDF",
    )
    parser.add_argument("artifact", help="PDF produced by badapple-pdf")
    args = parser.parse_args(argv)

    try:
        reader = PdfReader.from_path(args.artifact)
        files = reader.embedded_files()
        blob = decode_blob(files[BITSTREAM_NAME].data) if BITSTREAM_NAME in files else None
        links = reader.link_annotations() if reader.page_count() else []
        associated = reader.associated_files()
    except (ContainerFormatError, BlobFormatError, OSError) as e:
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return 1

    print(f"PDF version: {reader.version}")
    print(f"Pages: {reader.page_count()}")
    print("Attachments:")
    for name, stream in files.items():
        media_type = stream.dictionary.get("Subtype", "?")
        print(f"  {name}: {len(stream.data)} bytes ({media_type})")
    print(f"Associated files: {', '.join(associated) or '-'}")

    if blob is not None:
        header = blob.header
        print(
            f"Bitstream: {header.width}x{header.height}, "
            f"fps={header.fps:g}, frames={header.frame_count}"
        )
    else:
        print(f"Bitstream: missing {BITSTREAM_NAME}")

    for rect, uri in links:
        print(f"Link {list(rect)} -> {uri}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
