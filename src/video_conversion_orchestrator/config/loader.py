"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. Arguments passed to get_config()
2. Environment variables (VCO_*)
3. Config file (~/.vco/config.toml)
4. Default values

Environment variables:
- VCO_CONFIG_PATH: Path to config file (overrides default location)
- VCO_FFMPEG_PATH: Path to ffmpeg executable
- VCO_FFPROBE_PATH: Path to ffprobe executable
- VCO_STOP_TIMEOUT: Seconds to wait for ffmpeg to exit after stop()
- VCO_CALLBACK_DRAIN_TIMEOUT: Seconds to wait for queued progress callbacks
- VCO_PROBE_TIMEOUT: Seconds before an ffprobe run is abandoned
- VCO_TEMP_DIRECTORY: Staging directory for snapshots
- VCO_LOG_LEVEL, VCO_ENGINE_LOG_LEVEL, VCO_LOG_FILE, VCO_LOG_FORMAT:
  Logging overrides
"""

from __future__ import annotations

import logging
import threading
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from video_conversion_orchestrator.config.env import EnvReader
from video_conversion_orchestrator.config.models import (
    EngineConfig,
    LoggingConfig,
    OrchestratorConfig,
    ProbeConfig,
    ToolPathsConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".vco"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

_config_cache: OrchestratorConfig | None = None
_cache_lock = threading.Lock()


def get_default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Get the config file path, honouring VCO_CONFIG_PATH."""
    env_path = EnvReader(env).get_path("VCO_CONFIG_PATH", must_exist=False)
    return env_path or DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        path: Path to config file. If None, uses default location.

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist or
        cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    logger.debug("Loaded config from %s", path)
    return config


def _file_path(section: Mapping[str, Any], key: str) -> Path | None:
    value = section.get(key)
    return Path(value).expanduser() if value else None


def build_config(
    file_config: Mapping[str, Any],
    env: Mapping[str, str] | None = None,
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
) -> OrchestratorConfig:
    """Merge file values, environment and explicit overrides.

    Args:
        file_config: Parsed TOML config (may be empty).
        env: Environment mapping (os.environ if None).
        ffmpeg_path: Explicit override for ffmpeg path.
        ffprobe_path: Explicit override for ffprobe path.

    Returns:
        OrchestratorConfig with merged configuration.
    """
    reader = EnvReader(env)

    tools_file = file_config.get("tools", {})
    tools = ToolPathsConfig(
        ffmpeg=(
            ffmpeg_path
            or reader.get_path("VCO_FFMPEG_PATH")
            or _file_path(tools_file, "ffmpeg")
        ),
        ffprobe=(
            ffprobe_path
            or reader.get_path("VCO_FFPROBE_PATH")
            or _file_path(tools_file, "ffprobe")
        ),
    )

    engine_file = file_config.get("engine", {})
    engine = EngineConfig(
        stop_timeout=reader.get_float(
            "VCO_STOP_TIMEOUT", engine_file.get("stop_timeout", 5.0)
        ),
        reader_join_timeout=engine_file.get("reader_join_timeout", 5.0),
        callback_drain_timeout=reader.get_float(
            "VCO_CALLBACK_DRAIN_TIMEOUT",
            engine_file.get("callback_drain_timeout", 2.0),
        ),
        stderr_tail_lines=engine_file.get("stderr_tail_lines", 50),
        stats_period=engine_file.get("stats_period", 1),
    )

    probe_file = file_config.get("probe", {})
    probe = ProbeConfig(
        timeout=reader.get_float("VCO_PROBE_TIMEOUT", probe_file.get("timeout", 30.0)),
    )

    logging_file = file_config.get("logging", {})
    logging_config = LoggingConfig(
        level=reader.get_str("VCO_LOG_LEVEL", logging_file.get("level", "info")),
        engine_level=reader.get_str(
            "VCO_ENGINE_LOG_LEVEL", logging_file.get("engine_level")
        ),
        file=(
            reader.get_path("VCO_LOG_FILE", must_exist=False)
            or _file_path(logging_file, "file")
        ),
        format=reader.get_str("VCO_LOG_FORMAT", logging_file.get("format", "text")),
        include_stderr=logging_file.get("include_stderr", False),
        max_bytes=logging_file.get("max_bytes", 10_485_760),
        backup_count=logging_file.get("backup_count", 5),
    )

    temp_directory = reader.get_path(
        "VCO_TEMP_DIRECTORY", must_exist=False
    ) or _file_path(file_config, "temp_directory")

    return OrchestratorConfig(
        tools=tools,
        engine=engine,
        probe=probe,
        logging=logging_config,
        temp_directory=temp_directory,
    )


def get_config(
    config_path: Path | None = None,
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
) -> OrchestratorConfig:
    """Get configuration with full precedence handling.

    The result of a call without arguments is cached for the life of the
    process; use clear_config_cache() after changing the environment.

    Args:
        config_path: Path to config file (overrides VCO_CONFIG_PATH).
        ffmpeg_path: Override for ffmpeg path.
        ffprobe_path: Override for ffprobe path.

    Returns:
        OrchestratorConfig with merged configuration.
    """
    global _config_cache

    use_cache = config_path is None and ffmpeg_path is None and ffprobe_path is None
    if use_cache:
        with _cache_lock:
            if _config_cache is None:
                _config_cache = build_config(load_config_file())
            return _config_cache

    return build_config(
        load_config_file(config_path),
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
    )


def clear_config_cache() -> None:
    """Drop the cached default configuration."""
    global _config_cache
    with _cache_lock:
        _config_cache = None


def get_temp_directory(config: OrchestratorConfig | None = None) -> Path | None:
    """Get the snapshot staging directory, creating it if configured."""
    config = config or get_config()
    if config.temp_directory is None:
        return None
    config.temp_directory.mkdir(parents=True, exist_ok=True)
    return config.temp_directory
