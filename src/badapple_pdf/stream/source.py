"""
Frame Source
============

Blocking reader for raw grayscale frames produced by an ffmpeg subprocess.

This module provides:
    - read_raw_frames: Split an unframed gray byte stream into RawFrames
    - build_ffmpeg_command: argv that makes ffmpeg emit fixed-size gray frames
    - FrameSourceProcess: Scoped owner of the ffmpeg process and its pipe

Design Rules:
    - Never reads ahead: exactly one frame is buffered at a time
    - A partial trailing frame is discarded silently (not counted, not raised)
    - The exit status is checked only AFTER frames have been drained
    - The process is reaped on every exit path (success, early stop, error)
    - ffmpeg's stderr is passed through for the operator, never parsed
"""

import logging
import subprocess
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Sequence, Union

from badapple_pdf.models.request import DEFAULT_FPS
from badapple_pdf.stream.frame import RawFrame


logger = logging.getLogger(__name__)


class SourceProcessError(RuntimeError):
    """
    Raised when the frame source process is missing, cannot be spawned,
    or exits with a non-zero status.

    Attributes:
        returncode: Exit status, or None if the process never started
        frames_drained: Frames read before the failure was detected
    """

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        frames_drained: int = 0,
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.frames_drained = frames_drained


class FrameSourceMetrics:
    """Metrics for frame source observability."""

    __slots__ = (
        "frames_read",
        "bytes_read",
        "discarded_bytes",
    )

    def __init__(self) -> None:
        self.frames_read: int = 0
        self.bytes_read: int = 0
        self.discarded_bytes: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_read": self.frames_read,
            "bytes_read": self.bytes_read,
            "discarded_bytes": self.discarded_bytes,
        }


def read_raw_frames(
    stream: BinaryIO,
    width: int,
    height: int,
    metrics: Optional[FrameSourceMetrics] = None,
) -> Iterator[RawFrame]:
    """
    Yield fixed-size gray frames from an unframed byte stream.

    Reads block until a whole frame is available or the stream ends.
    If the stream ends mid-frame, the partial frame is dropped and the
    generator simply stops.

    Args:
        stream: Binary stream supporting readinto()
        width: Frame width in pixels
        height: Frame height in pixels
        metrics: Optional metrics sink

    Yields:
        RawFrame for every fully-read frame, in order
    """
    if width < 1 or height < 1:
        raise ValueError(f"invalid frame size {width}x{height}")
    if metrics is None:
        metrics = FrameSourceMetrics()

    frame_size = width * height
    index = 0

    while True:
        buf = bytearray(frame_size)
        view = memoryview(buf)
        filled = 0
        while filled < frame_size:
            n = stream.readinto(view[filled:])
            if not n:
                break
            filled += n
        view.release()

        metrics.bytes_read += filled

        if filled < frame_size:
            if filled:
                metrics.discarded_bytes += filled
                logger.debug(
                    f"Dropping partial frame {index}: "
                    f"{filled}/{frame_size} bytes before end of stream"
                )
            return

        metrics.frames_read += 1
        yield RawFrame.from_bytes(index, width, height, buf)
        index += 1


def _format_rate(rate: float) -> str:
    text = repr(float(rate))
    return text[:-2] if text.endswith(".0") else text


def build_ffmpeg_command(
    video_path: Union[str, Path],
    width: int,
    height: int,
    fps: float,
    max_frames: Optional[int] = None,
    binary: str = "ffmpeg",
    loglevel: str = "error",
) -> List[str]:
    """
    Build the ffmpeg argv for raw gray frame output on stdout.

    Filter chain: fps=<rate>,scale=<w>:<h>,format=gray. A non-positive
    rate falls back to 30. When max_frames is set ffmpeg stops by itself
    after that many frames, so the bound never breaks the pipe.
    """
    rate = fps if fps > 0 else DEFAULT_FPS
    vf = f"fps={_format_rate(rate)},scale={width}:{height},format=gray"

    command = [
        binary,
        "-hide_banner",
        "-loglevel",
        loglevel,
        "-i",
        str(video_path),
        "-vf",
        vf,
    ]
    if max_frames:
        command += ["-frames:v", str(max_frames)]
    command += ["-f", "rawvideo", "-pix_fmt", "gray", "pipe:1"]
    return command


class FrameSourceProcess:
    """
    Scoped frame source backed by an external process.

    Spawns the process with stdout piped and stderr inherited, exposes
    its output as RawFrames and guarantees the process is reaped when
    the context exits, whatever the reason.

    Attributes:
        command: argv of the source process
        width: Frame width in pixels
        height: Frame height in pixels
        metrics: Read metrics

    Example:
        command = build_ffmpeg_command("in.mp4", 80, 60, 30.0)
        with FrameSourceProcess(command, 80, 60) as source:
            for frame in source.frames():
                handle(frame)
            source.finish()  # raises SourceProcessError on non-zero exit
    """

    def __init__(
        self,
        command: Sequence[str],
        width: int,
        height: int,
        kill_timeout_seconds: float = 5.0,
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")

        self.command = list(command)
        self.width = width
        self.height = height
        self.kill_timeout_seconds = kill_timeout_seconds
        self.metrics = FrameSourceMetrics()

        self._process: Optional[subprocess.Popen] = None

    @property
    def returncode(self) -> Optional[int]:
        """Exit status once reaped, else None."""
        if self._process is None:
            return None
        return self._process.returncode

    def __enter__(self) -> "FrameSourceProcess":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def start(self) -> None:
        """
        Spawn the source process.

        Raises:
            SourceProcessError: If the executable is missing or cannot run
        """
        if self._process is not None:
            raise RuntimeError("frame source already started")

        logger.info(f"Starting frame source: {' '.join(self.command)}")
        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=None,
            )
        except OSError as e:
            raise SourceProcessError(
                f"failed to spawn {self.command[0]} (is it installed?): {e}"
            ) from e

    def frames(self) -> Iterator[RawFrame]:
        """Yield frames until the process closes its output."""
        if self._process is None or self._process.stdout is None:
            raise RuntimeError("frame source not started")

        yield from read_raw_frames(
            self._process.stdout,
            self.width,
            self.height,
            metrics=self.metrics,
        )

    def finish(self) -> int:
        """
        Close the output pipe, wait for the process and check its status.

        Call only after the frames have been consumed.

        Returns:
            The exit status (always 0)

        Raises:
            SourceProcessError: If the process exited non-zero
        """
        if self._process is None:
            raise RuntimeError("frame source not started")

        if self._process.stdout is not None and not self._process.stdout.closed:
            self._process.stdout.close()

        returncode = self._process.wait()
        if returncode != 0:
            raise SourceProcessError(
                f"{self.command[0]} exited with non-zero status {returncode}",
                returncode=returncode,
                frames_drained=self.metrics.frames_read,
            )
        return returncode

    def close(self) -> None:
        """Release the pipe and reap the process. Safe to call repeatedly."""
        process = self._process
        if process is None:
            return

        if process.stdout is not None and not process.stdout.closed:
            process.stdout.close()

        if process.poll() is None:
            logger.info(f"Terminating frame source (pid={process.pid})")
            process.terminate()
            try:
                process.wait(timeout=self.kill_timeout_seconds)
            except subprocess.TimeoutExpired:
                logger.warning(
                    f"Frame source did not exit within "
                    f"{self.kill_timeout_seconds:.1f}s, killing"
                )
                process.kill()
                process.wait()
