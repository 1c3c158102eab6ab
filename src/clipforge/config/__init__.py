"""Configuration loading and models."""

from clipforge.config.env import EnvReader
from clipforge.config.loader import (
    ConfigFileError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from clipforge.config.models import (
    ClipforgeConfig,
    ExportConfig,
    LoggingConfig,
    ServerConfig,
    ThumbnailConfig,
    ToolPathsConfig,
)

__all__ = [
    "ClipforgeConfig",
    "ConfigFileError",
    "EnvReader",
    "ExportConfig",
    "LoggingConfig",
    "ServerConfig",
    "ThumbnailConfig",
    "ToolPathsConfig",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
