"""Configuration data models.

This module defines dataclasses for clipforge configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path

from clipforge.command.operations import Encode

DEFAULT_DATA_DIR = Path.home() / ".clipforge"

VALID_RESOLUTIONS = ("source", "480p", "720p", "1080p", "4K")


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    Explicit paths win; otherwise tools are looked up in resource_dir
    (bundled builds) and then in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None
    resource_dir: Path | None = DEFAULT_DATA_DIR / "bin"


@dataclass
class ExportConfig:
    """Configuration for export jobs."""

    # Parent directory for per-job workspaces (None = system temp dir)
    temp_directory: Path | None = None

    default_resolution: str = "source"

    # Encoder settings applied whenever streams are re-encoded
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "medium"
    crf: int = 23
    audio_bitrate: str = "128k"

    # Minimum interval between progress updates
    progress_throttle_ms: int = 100

    # Jobs run at the same time by the session manager
    max_concurrent_jobs: int = 1

    # Per-invocation timeout in seconds (None = no limit)
    process_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.default_resolution not in VALID_RESOLUTIONS:
            raise ValueError(
                f"default_resolution must be one of {VALID_RESOLUTIONS}, "
                f"got {self.default_resolution}"
            )
        if not 0 <= self.crf <= 51:
            raise ValueError(f"crf must be between 0 and 51, got {self.crf}")
        if self.progress_throttle_ms < 0:
            raise ValueError(
                f"progress_throttle_ms must be >= 0, got {self.progress_throttle_ms}"
            )
        if self.max_concurrent_jobs < 1:
            raise ValueError(
                f"max_concurrent_jobs must be >= 1, got {self.max_concurrent_jobs}"
            )
        if self.process_timeout is not None and self.process_timeout <= 0:
            raise ValueError(
                f"process_timeout must be positive, got {self.process_timeout}"
            )

    @property
    def throttle_seconds(self) -> float:
        return self.progress_throttle_ms / 1000

    def encode_settings(self) -> Encode:
        """Return the encoder settings as a command operation."""
        return Encode(
            video_codec=self.video_codec,
            audio_codec=self.audio_codec,
            preset=self.preset,
            crf=self.crf,
            audio_bitrate=self.audio_bitrate,
        )


@dataclass
class ThumbnailConfig:
    """Configuration for thumbnail generation."""

    width: int = 320
    height: int = 180

    # Output directory (None = next to the source file)
    directory: Path | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"thumbnail size must be positive, got {self.width}x{self.height}"
            )


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class ServerConfig:
    """Configuration for the progress notification server."""

    host: str = "127.0.0.1"
    port: int = 8765

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")


@dataclass
class ClipforgeConfig:
    """Main configuration object."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    thumbnails: ThumbnailConfig = field(default_factory=ThumbnailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
