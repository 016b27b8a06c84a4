"""
Configuration Tests
===================

YAML loading, environment overrides and request validation.
"""

import logging

import pytest
import yaml
from pydantic import ValidationError

from badapple_pdf.config import Settings, load_config, setup_logging
from badapple_pdf.models import EncodeRequest


ENV_VARS = (
    "BADAPPLE_FFMPEG",
    "BADAPPLE_FFMPEG_LOGLEVEL",
    "BADAPPLE_LOG_LEVEL",
    "BADAPPLE_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config = load_config()

        assert config.ffmpeg.binary == "ffmpeg"
        assert config.ffmpeg.loglevel == "error"
        assert config.encoder.log_every_n_frames == 300
        assert config.output.create_parent_dirs is True
        assert config.logging.format == "text"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "badapple.yaml"
        path.write_text(
            "ffmpeg:\n"
            "  binary: /opt/ffmpeg/bin/ffmpeg\n"
            "  kill_timeout_seconds: 1.5\n"
            "output:\n"
            "  create_parent_dirs: false\n"
        )
        config = load_config(str(path))

        assert config.ffmpeg.binary == "/opt/ffmpeg/bin/ffmpeg"
        assert config.ffmpeg.kill_timeout_seconds == 1.5
        assert config.ffmpeg.loglevel == "error"
        assert config.output.create_parent_dirs is False

    def test_searches_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / "badapple.yml").write_text("logging:\n  level: DEBUG\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().logging.level == "DEBUG"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "badapple.yaml"
        path.write_text("")
        assert load_config(str(path)) == Settings()

    def test_missing_explicit_file_uses_defaults(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            config = load_config(str(tmp_path / "nope.yaml"))
        assert config == Settings()
        assert "not found" in caplog.text

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "badapple.yaml"
        path.write_text("ffmpeg:\n  binary: from-yaml\nlogging:\n  format: text\n")
        monkeypatch.setenv("BADAPPLE_FFMPEG", "from-env")
        monkeypatch.setenv("BADAPPLE_FFMPEG_LOGLEVEL", "quiet")
        monkeypatch.setenv("BADAPPLE_LOG_FORMAT", "json")

        config = load_config(str(path))
        assert config.ffmpeg.binary == "from-env"
        assert config.ffmpeg.loglevel == "quiet"
        assert config.logging.format == "json"

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "badapple.yaml"
        path.write_text("encoder:\n  log_every_n_frames: 0\n")
        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "badapple.yaml"
        path.write_text("ffmpeg: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_config(str(path))

    def test_top_level_must_be_mapping(self, tmp_path, monkeypatch):
        path = tmp_path / "badapple.yaml"
        path.write_text("- ffmpeg\n")
        monkeypatch.setenv("BADAPPLE_FFMPEG", "from-env")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_setup_logging_accepts_unknown_level(self):
        setup_logging(Settings.model_validate({"logging": {"level": "chatty"}}))


class TestEncodeRequest:
    """Tests for EncodeRequest validation."""

    def test_valid(self, sample_request_args):
        request = EncodeRequest(**sample_request_args)
        assert request.width == 80
        assert request.output_path.name == "badapple.pdf"
        assert request.frame_limit is None

    def test_frame_limit(self, sample_request_args):
        sample_request_args["max_frames"] = 12
        assert EncodeRequest(**sample_request_args).frame_limit == 12

    def test_non_positive_fps_is_accepted(self, sample_request_args):
        sample_request_args["fps"] = -5
        assert EncodeRequest(**sample_request_args).fps == -5.0

    @pytest.mark.parametrize(
        "field, value",
        [
            ("width", 0),
            ("height", 65536),
            ("threshold", 256),
            ("threshold", -1),
            ("max_frames", -1),
            ("max_frames", 2 ** 32),
        ],
    )
    def test_out_of_range(self, sample_request_args, field, value):
        sample_request_args[field] = value
        with pytest.raises(ValidationError):
            EncodeRequest(**sample_request_args)

    def test_missing_url(self, sample_request_args):
        del sample_request_args["start_url"]
        with pytest.raises(ValidationError):
            EncodeRequest(**sample_request_args)
