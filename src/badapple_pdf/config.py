"""
badapple-pdf Configuration
==========================

This module handles configuration loading for the encoder.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. badapple.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    BADAPPLE_FFMPEG          -> ffmpeg.binary
    BADAPPLE_FFMPEG_LOGLEVEL -> ffmpeg.loglevel
    BADAPPLE_LOG_LEVEL       -> logging.level
    BADAPPLE_LOG_FORMAT      -> logging.format

Example:
    from badapple_pdf.config import settings

    print(settings.ffmpeg.binary)
    print(settings.output.create_parent_dirs)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class FfmpegConfig(BaseModel):
    """Frame source process configuration."""

    binary: str = Field(
        default="ffmpeg",
        description="ffmpeg executable name or path",
    )
    loglevel: str = Field(
        default="error",
        description="Value passed to ffmpeg -loglevel",
    )
    kill_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Grace period before a terminated ffmpeg is killed",
    )


class EncoderConfig(BaseModel):
    """Bitstream encoder configuration."""

    log_every_n_frames: int = Field(
        default=300,
        ge=1,
        description="Log encoding progress every N frames",
    )


class OutputConfig(BaseModel):
    """Artifact output configuration."""

    create_parent_dirs: bool = Field(
        default=True,
        description="Create missing parent directories of the output path",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for badapple-pdf.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    ffmpeg: FfmpegConfig = Field(default_factory=FfmpegConfig)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to badapple.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the file is not a mapping or a value is invalid
            (pydantic.ValidationError is a ValueError)
        OSError: If the file exists but cannot be read
    """
    if config_path is None:
        search_paths = [
            Path("badapple.yaml"),
            Path("badapple.yml"),
            Path.home() / ".config" / "badapple-pdf" / "badapple.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
        if not isinstance(config_data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using defaults")
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    if env_bin := os.environ.get("BADAPPLE_FFMPEG"):
        config_data.setdefault("ffmpeg", {})["binary"] = env_bin
    if env_ff_level := os.environ.get("BADAPPLE_FFMPEG_LOGLEVEL"):
        config_data.setdefault("ffmpeg", {})["loglevel"] = env_ff_level

    if env_log := os.environ.get("BADAPPLE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("BADAPPLE_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
