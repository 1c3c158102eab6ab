"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to functions)
2. Environment variables (CLIPFORGE_*)
3. Config file (~/.clipforge/config.toml)
4. Default values

Environment variables:
- CLIPFORGE_CONFIG_PATH: Path to config file (overrides default location)
- CLIPFORGE_FFMPEG_PATH / CLIPFORGE_FFPROBE_PATH: Tool paths
- CLIPFORGE_RESOURCE_DIR: Directory holding bundled tool builds
- CLIPFORGE_TEMP_DIR: Parent directory for job workspaces
- CLIPFORGE_LOG_LEVEL / CLIPFORGE_LOG_FILE / CLIPFORGE_LOG_FORMAT: Logging
- CLIPFORGE_SERVER_HOST / CLIPFORGE_SERVER_PORT: Notification server
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from clipforge.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from clipforge.config.env import EnvReader
from clipforge.config.models import DEFAULT_DATA_DIR, ClipforgeConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = DEFAULT_DATA_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class ConfigFileError(ValueError):
    """Raised when a config file exists but cannot be parsed."""


def get_default_config_path() -> Path:
    """Get the config file path, honouring CLIPFORGE_CONFIG_PATH."""
    env_path = os.environ.get("CLIPFORGE_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Load and parse a TOML file.

    Args:
        path: Path to the TOML file.
        strict: If True, raise ConfigFileError on parse failures.

    Returns:
        Parsed dictionary. Empty dict if the file doesn't exist, or if it
        cannot be parsed and strict is False.
    """
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigFileError(f"Failed to load config file {path}: {e}") from e
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    logger.debug("Loaded config from %s", path)
    return config


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file.

    Results are cached and reloaded when the file's mtime changes.
    Thread-safe: uses a lock to protect the cache.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise ConfigFileError on parse failures.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    temp_directory: Path | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> ClipforgeConfig:
    """Get clipforge configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides CLIPFORGE_CONFIG_PATH).
        ffmpeg_path: CLI override for ffmpeg path.
        ffprobe_path: CLI override for ffprobe path.
        temp_directory: CLI override for the job workspace parent.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigFileError on config file parse failures.

    Returns:
        ClipforgeConfig with merged configuration.

    Raises:
        ConfigFileError: When strict=True and the config file cannot be parsed.
        ValueError: When a merged value fails validation.
    """
    reader = env_reader or EnvReader()

    file_config = load_config_file(config_path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    builder.apply(
        ConfigSource(
            ffmpeg_path=ffmpeg_path,
            ffprobe_path=ffprobe_path,
            temp_directory=temp_directory,
        )
    )
    return builder.build()
