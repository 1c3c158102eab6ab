"""Configuration builder with explicit layering.

ConfigBuilder composes ClipforgeConfig from several ConfigSources, later
sources overriding earlier ones.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from clipforge.config.env import EnvReader
from clipforge.config.models import (
    ClipforgeConfig,
    ExportConfig,
    LoggingConfig,
    ServerConfig,
    ThumbnailConfig,
    ToolPathsConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Tools
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None
    resource_dir: Path | None = None

    # Export
    temp_directory: Path | None = None
    default_resolution: str | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    preset: str | None = None
    crf: int | None = None
    audio_bitrate: str | None = None
    progress_throttle_ms: int | None = None
    max_concurrent_jobs: int | None = None
    process_timeout: float | None = None

    # Thumbnails
    thumbnail_width: int | None = None
    thumbnail_height: int | None = None
    thumbnail_directory: Path | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None

    # Server
    server_host: str | None = None
    server_port: int | None = None


class ConfigBuilder:
    """Builds ClipforgeConfig by layering ConfigSources with precedence.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply a source; its non-None values override existing ones."""
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> ClipforgeConfig:
        """Build the final ClipforgeConfig with defaults for unset values.

        Raises:
            ValueError: If a section fails validation.
        """
        tool_defaults = ToolPathsConfig()
        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
            resource_dir=self._get("resource_dir", tool_defaults.resource_dir),
        )

        export = ExportConfig(
            temp_directory=self._get("temp_directory", None),
            default_resolution=self._get("default_resolution", "source"),
            video_codec=self._get("video_codec", "libx264"),
            audio_codec=self._get("audio_codec", "aac"),
            preset=self._get("preset", "medium"),
            crf=self._get("crf", 23),
            audio_bitrate=self._get("audio_bitrate", "128k"),
            progress_throttle_ms=self._get("progress_throttle_ms", 100),
            max_concurrent_jobs=self._get("max_concurrent_jobs", 1),
            process_timeout=self._get("process_timeout", None),
        )

        thumbnails = ThumbnailConfig(
            width=self._get("thumbnail_width", 320),
            height=self._get("thumbnail_height", 180),
            directory=self._get("thumbnail_directory", None),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )

        server = ServerConfig(
            host=self._get("server_host", "127.0.0.1"),
            port=self._get("server_port", 8765),
        )

        return ClipforgeConfig(
            tools=tools,
            export=export,
            thumbnails=thumbnails,
            logging=logging_config,
            server=server,
        )


def _path_or_none(value: Any) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from a parsed TOML config file."""
    tools = file_config.get("tools", {})
    export = file_config.get("export", {})
    thumbnails = file_config.get("thumbnails", {})
    logging_conf = file_config.get("logging", {})
    server = file_config.get("server", {})

    return ConfigSource(
        # Tools
        ffmpeg_path=_path_or_none(tools.get("ffmpeg")),
        ffprobe_path=_path_or_none(tools.get("ffprobe")),
        resource_dir=_path_or_none(tools.get("resource_dir")),
        # Export
        temp_directory=_path_or_none(export.get("temp_directory")),
        default_resolution=export.get("default_resolution"),
        video_codec=export.get("video_codec"),
        audio_codec=export.get("audio_codec"),
        preset=export.get("preset"),
        crf=export.get("crf"),
        audio_bitrate=export.get("audio_bitrate"),
        progress_throttle_ms=export.get("progress_throttle_ms"),
        max_concurrent_jobs=export.get("max_concurrent_jobs"),
        process_timeout=export.get("process_timeout"),
        # Thumbnails
        thumbnail_width=thumbnails.get("width"),
        thumbnail_height=thumbnails.get("height"),
        thumbnail_directory=_path_or_none(thumbnails.get("directory")),
        # Logging
        logging_level=logging_conf.get("level"),
        logging_file=_path_or_none(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
        # Server
        server_host=server.get("host"),
        server_port=server.get("port"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from CLIPFORGE_* environment variables."""
    return ConfigSource(
        # Tools
        ffmpeg_path=reader.get_path("CLIPFORGE_FFMPEG_PATH"),
        ffprobe_path=reader.get_path("CLIPFORGE_FFPROBE_PATH"),
        resource_dir=reader.get_path("CLIPFORGE_RESOURCE_DIR"),
        # Export
        temp_directory=reader.get_path("CLIPFORGE_TEMP_DIR"),
        default_resolution=reader.get_str("CLIPFORGE_DEFAULT_RESOLUTION"),
        video_codec=reader.get_str("CLIPFORGE_VIDEO_CODEC"),
        audio_codec=reader.get_str("CLIPFORGE_AUDIO_CODEC"),
        preset=reader.get_str("CLIPFORGE_PRESET"),
        crf=reader.get_int("CLIPFORGE_CRF"),
        audio_bitrate=reader.get_str("CLIPFORGE_AUDIO_BITRATE"),
        progress_throttle_ms=reader.get_int("CLIPFORGE_PROGRESS_THROTTLE_MS"),
        max_concurrent_jobs=reader.get_int("CLIPFORGE_MAX_CONCURRENT_JOBS"),
        process_timeout=reader.get_float("CLIPFORGE_PROCESS_TIMEOUT"),
        # Thumbnails
        thumbnail_width=reader.get_int("CLIPFORGE_THUMBNAIL_WIDTH"),
        thumbnail_height=reader.get_int("CLIPFORGE_THUMBNAIL_HEIGHT"),
        thumbnail_directory=reader.get_path("CLIPFORGE_THUMBNAIL_DIR"),
        # Logging
        logging_level=reader.get_str("CLIPFORGE_LOG_LEVEL"),
        logging_file=reader.get_path("CLIPFORGE_LOG_FILE", must_exist=False),
        logging_format=reader.get_str("CLIPFORGE_LOG_FORMAT"),
        logging_include_stderr=None,
        logging_max_bytes=None,
        logging_backup_count=None,
        # Server
        server_host=reader.get_str("CLIPFORGE_SERVER_HOST"),
        server_port=reader.get_int("CLIPFORGE_SERVER_PORT"),
    )
