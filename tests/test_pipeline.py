"""
Pipeline Tests
==============

Frame encoding, the ffmpeg-backed run and the command line entry points.
"""

import io

import numpy as np
import pytest

from badapple_pdf.codec import decode_blob, pack_bits, packed_length, threshold_frame
from badapple_pdf.config import FfmpegConfig, Settings
from badapple_pdf.container import PdfReader
from badapple_pdf.main import inspect_main, main
from badapple_pdf.models import EncodeRequest
from badapple_pdf.pipeline import encode_frames, encode_video_blob, run
from badapple_pdf.stream import RawFrame, SourceProcessError, read_raw_frames


URL = "https://example.org/badapple-pdf/play.html"


def _expected_bitmaps(raw_frames, width, height, threshold):
    return [
        pack_bits(threshold_frame(RawFrame.from_bytes(i, width, height, raw).samples, threshold))
        for i, raw in enumerate(raw_frames)
    ]


@pytest.fixture
def fake_settings(make_fake_ffmpeg):
    """Settings whose ffmpeg is a fake script emitting the given payload."""

    def _settings(payload: bytes, exit_code: int = 0) -> Settings:
        script = make_fake_ffmpeg(payload, exit_code=exit_code)
        return Settings(ffmpeg=FfmpegConfig(binary=str(script)))

    return _settings


class TestEncodeFrames:
    """Tests for encode_frames."""

    def test_decodes_to_thresholded_frames(self, gray_frames):
        stream = io.BytesIO(b"".join(gray_frames))
        blob = encode_frames(read_raw_frames(stream, 12, 10), 12, 10, 30.0, 128)

        decoded = decode_blob(blob)
        assert decoded.header.frame_count == 3
        assert decoded.header.fps_x100 == 3000
        assert decoded.frames == _expected_bitmaps(gray_frames, 12, 10, 128)

    def test_partial_trailing_frame(self, gray_frames):
        """Two full frames and a partial third give a two-frame blob."""
        payload = gray_frames[0] + gray_frames[1] + gray_frames[2][:119]
        blob = encode_frames(read_raw_frames(io.BytesIO(payload), 12, 10), 12, 10, 30.0, 128)

        assert decode_blob(blob).header.frame_count == 2
        assert len(blob) == 10 + 2 * packed_length(12, 10)

    def test_max_frames_stops_without_reading_ahead(self, gray_frames):
        stream = io.BytesIO(b"".join(gray_frames))
        blob = encode_frames(read_raw_frames(stream, 12, 10), 12, 10, 30.0, 128, max_frames=2)

        assert decode_blob(blob).header.frame_count == 2
        assert stream.tell() == 2 * 120

    def test_unlimited_when_zero(self, gray_frames):
        stream = io.BytesIO(b"".join(gray_frames))
        blob = encode_frames(read_raw_frames(stream, 12, 10), 12, 10, 30.0, 128, max_frames=0)
        assert decode_blob(blob).header.frame_count == 3

    def test_empty_source(self):
        blob = encode_frames([], 80, 60, 30.0, 128)
        assert blob == bytes.fromhex("50 00 3C 00 B8 0B 00 00 00 00")

    def test_default_rate(self, gray_frames):
        frames = read_raw_frames(io.BytesIO(gray_frames[0]), 12, 10)
        assert decode_blob(encode_frames(frames, 12, 10, 0.0, 128)).header.fps_x100 == 3000

    def test_all_dark_at_255(self, gray_frames):
        """Threshold 255 makes every pixel dark: first frame all ones, then zero deltas."""
        stream = io.BytesIO(b"".join(gray_frames))
        blob = encode_frames(read_raw_frames(stream, 12, 10), 12, 10, 30.0, 255)

        body = blob[10:]
        assert body[:15] == b"\xff" * 15
        assert body[15:] == bytes(30)

    def test_rejects_mismatched_frame(self):
        frame = RawFrame.from_bytes(0, 4, 4, bytes(16))
        with pytest.raises(ValueError):
            encode_frames([frame], 8, 2, 30.0, 128)

    def test_rejects_bad_threshold(self):
        with pytest.raises(ValueError):
            encode_frames([], 8, 8, 30.0, 256)


class TestEncodeVideoBlob:
    """Tests for encode_video_blob against a fake ffmpeg."""

    def test_encodes_process_output(self, gray_frames, fake_settings, tmp_path):
        settings = fake_settings(b"".join(gray_frames))
        blob = encode_video_blob("in.mp4", 12, 10, 25.0, 100, settings=settings)

        decoded = decode_blob(blob)
        assert decoded.header.fps_x100 == 2500
        assert decoded.frames == _expected_bitmaps(gray_frames, 12, 10, 100)

        argv = (tmp_path / "argv.txt").read_text().split("\n")
        assert "fps=25,scale=12:10,format=gray" in argv
        assert "-frames:v" not in argv
        assert argv[-1] == "pipe:1"

    def test_passes_frame_bound(self, gray_frames, fake_settings, tmp_path):
        settings = fake_settings(b"".join(gray_frames))
        blob = encode_video_blob("in.mp4", 12, 10, 30.0, 128, max_frames=1, settings=settings)

        assert decode_blob(blob).header.frame_count == 1
        argv = (tmp_path / "argv.txt").read_text().split("\n")
        assert argv[argv.index("-frames:v") + 1] == "1"

    def test_non_zero_exit(self, gray_frames, fake_settings):
        settings = fake_settings(b"".join(gray_frames), exit_code=1)
        with pytest.raises(SourceProcessError) as excinfo:
            encode_video_blob("in.mp4", 12, 10, 30.0, 128, settings=settings)

        assert excinfo.value.returncode == 1
        assert excinfo.value.frames_drained == 3

    def test_missing_ffmpeg(self, tmp_path):
        settings = Settings(ffmpeg=FfmpegConfig(binary=str(tmp_path / "missing")))
        with pytest.raises(SourceProcessError):
            encode_video_blob("in.mp4", 12, 10, 30.0, 128, settings=settings)


class TestRun:
    """Tests for run."""

    def test_writes_artifact(self, gray_frames, fake_settings, tmp_path):
        audio = b"OggS" + bytes(range(256))
        (tmp_path / "a.ogg").write_bytes(audio)
        request = EncodeRequest(
            video_path=tmp_path / "v.mp4",
            audio_path=tmp_path / "a.ogg",
            output_path=tmp_path / "nested" / "out.pdf",
            width=12,
            height=10,
            fps=30.0,
            threshold=128,
            max_frames=0,
            start_url=URL,
        )

        result = run(request, fake_settings(b"".join(gray_frames)))

        assert result.frame_count == 3
        assert result.blob_size == 10 + 3 * packed_length(12, 10)
        assert result.audio_size == len(audio)
        assert result.artifact_size == request.output_path.stat().st_size

        reader = PdfReader.from_path(request.output_path)
        assert reader.attachment("AU.ogg") == audio
        assert decode_blob(reader.attachment("BA.bin")).header.frame_count == 3

    def test_no_parent_creation_when_disabled(self, gray_frames, fake_settings, tmp_path):
        (tmp_path / "a.ogg").write_bytes(b"x")
        settings = fake_settings(b"".join(gray_frames))
        settings.output.create_parent_dirs = False
        request = EncodeRequest(
            video_path="v.mp4",
            audio_path=tmp_path / "a.ogg",
            output_path=tmp_path / "missing" / "out.pdf",
            width=12,
            height=10,
            fps=30.0,
            threshold=128,
            start_url=URL,
        )
        with pytest.raises(FileNotFoundError):
            run(request, settings)


class TestMain:
    """End-to-end tests for the command line."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("BADAPPLE_FFMPEG", raising=False)

    def _config(self, tmp_path, make_fake_ffmpeg, payload, exit_code=0):
        script = make_fake_ffmpeg(payload, exit_code=exit_code)
        config = tmp_path / "badapple.yaml"
        config.write_text(f"ffmpeg:\n  binary: {script}\nlogging:\n  level: WARNING\n")
        return str(config)

    def _argv(self, tmp_path, config, **overrides):
        values = {
            "video": str(tmp_path / "v.mp4"),
            "audio": str(tmp_path / "a.ogg"),
            "output": str(tmp_path / "out" / "badapple.pdf"),
            "width": "12",
            "height": "10",
            "fps": "30",
            "threshold": "128",
            "max_frames": "0",
            "start_url": URL,
        }
        values.update(overrides)
        return list(values.values()) + ["--config", config]

    def test_success(self, tmp_path, make_fake_ffmpeg, gray_frames):
        (tmp_path / "a.ogg").write_bytes(b"OggS-audio")
        config = self._config(tmp_path, make_fake_ffmpeg, b"".join(gray_frames))

        assert main(self._argv(tmp_path, config)) == 0

        reader = PdfReader.from_path(tmp_path / "out" / "badapple.pdf")
        assert reader.attachment("AU.ogg") == b"OggS-audio"
        decoded = decode_blob(reader.attachment("BA.bin"))
        assert decoded.frames == _expected_bitmaps(gray_frames, 12, 10, 128)
        assert reader.link_at(306, 410) == URL

    def test_missing_arguments(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["v.mp4", "a.ogg", "out.pdf", "80"])
        assert excinfo.value.code == 2

    def test_non_numeric_argument(self, tmp_path):
        config = str(tmp_path / "none.yaml")
        with pytest.raises(SystemExit) as excinfo:
            main(self._argv(tmp_path, config, width="wide"))
        assert excinfo.value.code == 2

    def test_out_of_range_threshold(self, tmp_path, make_fake_ffmpeg, capsys):
        config = self._config(tmp_path, make_fake_ffmpeg, b"")
        assert main(self._argv(tmp_path, config, threshold="300")) == 2
        assert "threshold" in capsys.readouterr().err
        assert not (tmp_path / "argv.txt").exists()

    @pytest.mark.parametrize(
        "content",
        [
            "ffmpeg: [unclosed\n",
            "ffmpeg:\n  kill_timeout_seconds: -1\n",
            "encoder: not-a-mapping\n",
            "- just\n- a list\n",
        ],
    )
    def test_bad_config_file(self, tmp_path, capsys, content):
        """A broken config file is reported instead of raising."""
        config = tmp_path / "badapple.yaml"
        config.write_text(content)

        assert main(self._argv(tmp_path, str(config))) == 2
        err = capsys.readouterr().err
        assert "badapple-pdf: error: invalid config" in err
        assert not (tmp_path / "out" / "badapple.pdf").exists()

    def test_config_path_is_directory(self, tmp_path, capsys):
        config = tmp_path / "conf.d"
        config.mkdir()
        assert main(self._argv(tmp_path, str(config))) == 2
        assert "invalid config" in capsys.readouterr().err

    def test_missing_audio(self, tmp_path, make_fake_ffmpeg, gray_frames):
        config = self._config(tmp_path, make_fake_ffmpeg, b"".join(gray_frames))
        assert main(self._argv(tmp_path, config)) == 1
        assert not (tmp_path / "out" / "badapple.pdf").exists()

    def test_failing_source(self, tmp_path, make_fake_ffmpeg, gray_frames):
        (tmp_path / "a.ogg").write_bytes(b"OggS")
        config = self._config(tmp_path, make_fake_ffmpeg, b"".join(gray_frames), exit_code=1)
        assert main(self._argv(tmp_path, config)) == 1
        assert not (tmp_path / "out" / "badapple.pdf").exists()


class TestInspect:
    """Tests for the inspect entry point."""

    def test_report(self, tmp_path, make_fake_ffmpeg, gray_frames, capsys, monkeypatch):
        monkeypatch.delenv("BADAPPLE_FFMPEG", raising=False)
        (tmp_path / "a.ogg").write_bytes(b"OggS")
        script = make_fake_ffmpeg(b"".join(gray_frames))
        config = tmp_path / "badapple.yaml"
        config.write_text(f"ffmpeg:\n  binary: {script}\n")
        output = tmp_path / "badapple.pdf"
        assert main([
            "v.mp4", str(tmp_path / "a.ogg"), str(output),
            "12", "10", "29.97", "128", "2", URL, "--config", str(config),
        ]) == 0
        capsys.readouterr()

        assert inspect_main([str(output)]) == 0
        out = capsys.readouterr().out
        assert "PDF version: 1.7" in out
        assert "Pages: 1" in out
        assert "BA.bin: 40 bytes (application/octet-stream)" in out
        assert "AU.ogg: 4 bytes (audio/ogg)" in out
        assert "Associated files: BA.bin, AU.ogg" in out
        assert "Bitstream: 12x10, fps=29.97, frames=2" in out
        assert f"-> {URL}" in out

    def test_not_a_pdf(self, tmp_path, capsys):
        path = tmp_path / "junk.pdf"
        path.write_bytes(b"not a pdf")
        assert inspect_main([str(path)]) == 1
        assert "missing %PDF- header" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert inspect_main([str(tmp_path / "none.pdf")]) == 1


def test_threshold_bitmap_matches_numpy(gray_frames):
    """The cv2 threshold agrees with a plain comparison."""
    samples = np.frombuffer(gray_frames[0], dtype=np.uint8).reshape(10, 12)
    assert np.array_equal(threshold_frame(samples, 77), (samples <= 77).astype(np.uint8))
