"""
Test Configuration
==================

Pytest fixtures and test configuration for badapple-pdf.
"""

import sys
from pathlib import Path

import numpy as np
import pytest


@pytest.fixture
def sample_request_args():
    """Provide valid EncodeRequest fields (paths are not touched)."""
    return {
        "video_path": "badapple.mp4",
        "audio_path": "badapple.ogg",
        "output_path": "out/badapple.pdf",
        "width": 80,
        "height": 60,
        "fps": 30.0,
        "threshold": 128,
        "max_frames": 0,
        "start_url": "https://example.org/badapple-pdf/play.html",
    }


@pytest.fixture
def rng():
    """Deterministic random generator."""
    return np.random.default_rng(20240214)


@pytest.fixture
def gray_frames(rng):
    """Three 12x10 gray frames as raw bytes."""
    return [rng.integers(0, 256, size=12 * 10, dtype=np.uint8).tobytes() for _ in range(3)]


@pytest.fixture
def make_fake_ffmpeg(tmp_path):
    """
    Factory for an executable standing in for ffmpeg.

    The script records its argv to <tmp>/argv.txt, writes the given payload
    to stdout and exits with the given status.
    """

    def _make(payload: bytes, exit_code: int = 0, name: str = "fake-ffmpeg") -> Path:
        data_file = tmp_path / f"{name}.raw"
        data_file.write_bytes(payload)
        argv_file = tmp_path / "argv.txt"

        script = tmp_path / name
        script.write_text(
            f"#!{sys.executable}\n"
            "import sys\n"
            f"open({str(argv_file)!r}, 'w').write('\\n'.join(sys.argv[1:]))\n"
            f"sys.stdout.buffer.write(open({str(data_file)!r}, 'rb').read())\n"
            "sys.stdout.buffer.flush()\n"
            f"sys.exit({exit_code})\n"
        )
        script.chmod(0o755)
        return script

    return _make
