"""
Encoding Pipeline
=================

End-to-end orchestration:

    Frame Source -> Thresholder -> Bit Packer -> Delta Encoder -> Blob Assembler
                                                                     |
    audio bytes (untouched) ----------------------------------> Container Builder -> PDF

Ordering Rules:
    - Frames are consumed one at a time until the source is exhausted or
      the optional max-frame bound is reached
    - The source exit status is checked only after that drain
    - The artifact is written once, after both payloads are complete
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from badapple_pdf.codec import (
    BlobAssembler,
    DeltaEncoder,
    pack_bits,
    threshold_frame,
)
from badapple_pdf.config import Settings, settings as default_settings
from badapple_pdf.container import ContainerBuilder
from badapple_pdf.models import BlobHeader, EncodeRequest
from badapple_pdf.stream import (
    FrameSourceProcess,
    RawFrame,
    build_ffmpeg_command,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodeResult:
    """
    Summary of a finished run.

    Attributes:
        output_path: Written artifact
        frame_count: Frames in the bitstream
        blob_size: Bitstream attachment size in bytes
        audio_size: Audio attachment size in bytes
        artifact_size: PDF size in bytes
    """

    output_path: Path
    frame_count: int
    blob_size: int
    audio_size: int
    artifact_size: int


def encode_frames(
    frames: Iterable[RawFrame],
    width: int,
    height: int,
    fps: Optional[float],
    threshold: int,
    max_frames: Optional[int] = None,
    log_every_n_frames: int = 300,
) -> bytes:
    """
    Encode a frame sequence into a finished blob.

    Args:
        frames: Raw gray frames of exactly width x height samples
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Declared frame rate (non-positive or None = 30.0)
        threshold: Dark threshold in [0, 255]
        max_frames: Stop after this many frames (None or 0 = unlimited)
        log_every_n_frames: Progress log interval

    Returns:
        Header + body bytes
    """
    if not 0 <= threshold <= 255:
        raise ValueError(f"threshold must be in [0, 255], got {threshold}")

    assembler = BlobAssembler(width, height, fps)
    encoder = DeltaEncoder()

    for frame in frames:
        if (frame.width, frame.height) != (width, height):
            raise ValueError(
                f"frame {frame.index} is {frame.width}x{frame.height}, "
                f"expected {width}x{height}"
            )

        bits = threshold_frame(frame.samples, threshold)
        assembler.append(encoder.encode(pack_bits(bits)))

        if assembler.frame_count % log_every_n_frames == 0:
            logger.debug(f"Encoded {assembler.frame_count} frames")

        if max_frames and assembler.frame_count >= max_frames:
            break

    return assembler.finalize()


def encode_video_blob(
    video_path: Union[str, Path],
    width: int,
    height: int,
    fps: Optional[float],
    threshold: int,
    max_frames: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> bytes:
    """
    Run ffmpeg on a video and encode its frames into a blob.

    Raises:
        SourceProcessError: If ffmpeg is missing or exits non-zero; the
            status is checked after the produced frames were encoded
    """
    settings = settings or default_settings

    command = build_ffmpeg_command(
        video_path,
        width,
        height,
        fps or 0.0,
        max_frames=max_frames,
        binary=settings.ffmpeg.binary,
        loglevel=settings.ffmpeg.loglevel,
    )

    with FrameSourceProcess(
        command,
        width,
        height,
        kill_timeout_seconds=settings.ffmpeg.kill_timeout_seconds,
    ) as source:
        blob = encode_frames(
            source.frames(),
            width,
            height,
            fps,
            threshold,
            max_frames=max_frames,
            log_every_n_frames=settings.encoder.log_every_n_frames,
        )
        source.finish()

    logger.debug(f"Frame source metrics: {source.metrics.to_dict()}")
    return blob


def run(request: EncodeRequest, settings: Optional[Settings] = None) -> EncodeResult:
    """
    Encode the video, embed it with the audio and write the PDF.

    Raises:
        SourceProcessError: Frame source failure
        OSError: Audio read or artifact write failure
    """
    settings = settings or default_settings

    blob = encode_video_blob(
        request.video_path,
        request.width,
        request.height,
        request.fps,
        request.threshold,
        max_frames=request.frame_limit,
        settings=settings,
    )
    logger.info(f"BA blob (raw) bytes: {len(blob)}")

    audio = request.audio_path.read_bytes()
    logger.info(f"AU raw bytes: {len(audio)}")

    builder = ContainerBuilder(request.start_url, blob, audio)
    written = builder.save(
        request.output_path,
        create_parent_dirs=settings.output.create_parent_dirs,
    )

    return EncodeResult(
        output_path=request.output_path,
        frame_count=BlobHeader.from_bytes(blob).frame_count,
        blob_size=len(blob),
        audio_size=len(audio),
        artifact_size=written,
    )
