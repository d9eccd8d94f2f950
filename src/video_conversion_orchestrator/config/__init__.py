"""Configuration management for the conversion orchestrator.

Configuration is loaded with precedence handling:
1. Explicit arguments (highest priority)
2. Environment variables (VCO_*)
3. Config file (~/.vco/config.toml)
4. Default values (lowest priority)
"""

from video_conversion_orchestrator.config.env import EnvReader
from video_conversion_orchestrator.config.loader import (
    build_config,
    clear_config_cache,
    get_config,
    get_default_config_path,
    get_temp_directory,
    load_config_file,
)
from video_conversion_orchestrator.config.models import (
    EngineConfig,
    LoggingConfig,
    OrchestratorConfig,
    ProbeConfig,
    ToolPathsConfig,
)

__all__ = [
    # Models
    "EngineConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "ProbeConfig",
    "ToolPathsConfig",
    # Loader
    "EnvReader",
    "build_config",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "get_temp_directory",
    "load_config_file",
]
