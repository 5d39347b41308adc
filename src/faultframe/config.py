"""
faultframe Configuration
========================

This module handles configuration loading for the frame player.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. faultframe.yaml / config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    FAULTFRAME_FPS            -> playback.fps
    FAULTFRAME_POOL_CAPACITY  -> playback.pool_capacity
    FAULTFRAME_WARMUP_MS      -> playback.warmup_ms
    FAULTFRAME_FRAMES_DIR     -> catalog.frames_dir
    FAULTFRAME_ARTIFACTS_DIR  -> artifacts.output_dir
    FAULTFRAME_LOG_LEVEL      -> logging.level

Example:
    from faultframe.config import load_config

    settings = load_config()
    print(settings.playback.fps)
    print(settings.catalog.frames_dir)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class PlaybackConfig(BaseModel):
    """Playback scheduling configuration."""

    fps: float = Field(default=30.0, gt=0, description="Target frames per second")
    pool_capacity: int = Field(
        default=10,
        ge=1,
        description="Number of worker processes started ahead of playback",
    )
    warmup_ms: int = Field(
        default=300,
        ge=0,
        description="Wait after pre-starting the pool before the first release",
    )
    completion_timeout_ms: Optional[int] = Field(
        default=None,
        gt=0,
        description="Per-frame completion bound (None = wait indefinitely)",
    )
    timeout_policy: Literal["abort", "skip"] = Field(
        default="abort",
        description="What to do with a worker that exceeds the completion bound",
    )


class CatalogConfig(BaseModel):
    """Input frame discovery configuration."""

    frames_dir: str = Field(default="frames", description="Directory of bitmap frames")
    key_offset: int = Field(
        default=4,
        ge=0,
        description="Character offset of the sequence number in each filename",
    )
    suffix: str = Field(default=".bmp", description="Frame file suffix")
    max_decode_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Decoder threads (None = executor default)",
    )


class ArtifactConfig(BaseModel):
    """Worker artifact generation configuration."""

    output_dir: str = Field(
        default="worker-frames",
        description="Directory where per-frame worker scripts are written",
    )
    bright_marker: str = Field(default="XX", description="Marker for bright pixels")
    dark_marker: str = Field(default="__", description="Marker for dark pixels")
    threshold: float = Field(
        default=127.5,
        ge=0,
        le=255,
        description="Pixels above this intensity use the bright marker",
    )
    python_executable: Optional[str] = Field(
        default=None,
        description="Interpreter used to run workers (None = current interpreter)",
    )

    @field_validator("bright_marker", "dark_marker")
    @classmethod
    def _marker_is_identifier(cls, value: str) -> str:
        if not value or not value.isidentifier():
            raise ValueError(f"marker {value!r} cannot start a function name")
        return value


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for faultframe.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    artifacts: ArtifactConfig = Field(default_factory=ArtifactConfig)
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
        config_path: Path to a YAML file. If None, searches the working directory.

    Returns:
        Settings: Loaded configuration

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
    """
    if config_path is not None and not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path is None:
        for path in (Path("faultframe.yaml"), Path("config.yaml")):
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Playback settings
    if env_fps := os.environ.get("FAULTFRAME_FPS"):
        config_data.setdefault("playback", {})["fps"] = float(env_fps)
    if env_pool := os.environ.get("FAULTFRAME_POOL_CAPACITY"):
        config_data.setdefault("playback", {})["pool_capacity"] = int(env_pool)
    if env_warmup := os.environ.get("FAULTFRAME_WARMUP_MS"):
        config_data.setdefault("playback", {})["warmup_ms"] = int(env_warmup)

    # Paths
    if env_frames := os.environ.get("FAULTFRAME_FRAMES_DIR"):
        config_data.setdefault("catalog", {})["frames_dir"] = env_frames
    if env_artifacts := os.environ.get("FAULTFRAME_ARTIFACTS_DIR"):
        config_data.setdefault("artifacts", {})["output_dir"] = env_artifacts

    # Logging settings
    if env_log := os.environ.get("FAULTFRAME_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


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
