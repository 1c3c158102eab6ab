"""External binary resolution and version detection.

Locates ffmpeg and ffprobe for the current platform. Lookup order:

1. An explicitly configured path.
2. The bundled resource directory, under the platform-specific name
   (e.g. ``ffmpeg-x86_64-unknown-linux-gnu``) and then the bare name.
3. The system PATH.

Resolution runs once per job and is never cached across jobs, so a binary
installed or removed while the process is running is picked up.
"""

from __future__ import annotations

import logging
import os
import platform
import re
import shutil
import stat
import subprocess  # nosec B404 - subprocess is required for tool detection
from datetime import datetime, timezone
from pathlib import Path

from clipforge.errors import BinaryNotFoundError
from clipforge.tools.models import ToolInfo, ToolSource, ToolStatus

logger = logging.getLogger(__name__)

# Timeout for version detection commands (seconds)
DETECTION_TIMEOUT = 10

# (system, normalized machine) -> target triple used for bundled binaries
_TARGET_TRIPLES: dict[tuple[str, str], str] = {
    ("windows", "x86_64"): "x86_64-pc-windows-msvc",
    ("darwin", "aarch64"): "aarch64-apple-darwin",
    ("darwin", "x86_64"): "x86_64-apple-darwin",
    ("linux", "x86_64"): "x86_64-unknown-linux-gnu",
    ("linux", "aarch64"): "aarch64-unknown-linux-gnu",
}

_MACHINE_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
}


def platform_binary_name(
    name: str,
    system: str | None = None,
    machine: str | None = None,
) -> str:
    """Get the platform-specific file name of a bundled binary.

    Args:
        name: Base binary name (e.g., "ffmpeg").
        system: OS name override (defaults to platform.system()).
        machine: CPU architecture override (defaults to platform.machine()).

    Returns:
        Name such as ``ffmpeg-aarch64-apple-darwin``, or the base name when
        the platform has no bundled build.
    """
    system = (system or platform.system()).casefold()
    machine = (machine or platform.machine()).casefold()
    machine = _MACHINE_ALIASES.get(machine, machine)

    triple = _TARGET_TRIPLES.get((system, machine))
    if triple is None:
        return name
    suffix = ".exe" if system == "windows" else ""
    return f"{name}-{triple}{suffix}"


def _is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _ensure_executable(path: Path) -> None:
    """Set rwxr-xr-x on a bundled binary that lost its executable bit."""
    if os.name != "posix" or os.access(path, os.X_OK):
        return
    try:
        path.chmod(
            stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH
        )
        logger.debug("Marked bundled binary executable: %s", path)
    except OSError as e:
        logger.warning("Could not mark %s executable: %s", path, e)


def find_binary(
    name: str,
    configured_path: Path | None = None,
    resource_dir: Path | None = None,
) -> tuple[Path, ToolSource] | None:
    """Find a binary without raising.

    Args:
        name: Binary name (e.g., "ffprobe").
        configured_path: Optional explicit path override.
        resource_dir: Optional directory holding bundled binaries.

    Returns:
        Tuple of (path, source), or None if nothing usable was found.
    """
    if configured_path is not None:
        if _is_executable_file(configured_path):
            return configured_path, ToolSource.CONFIGURED
        logger.warning(
            "Configured path for %s is not an executable file: %s",
            name,
            configured_path,
        )

    if resource_dir is not None and resource_dir.is_dir():
        for candidate_name in (platform_binary_name(name), name):
            candidate = resource_dir / candidate_name
            if candidate.is_file():
                _ensure_executable(candidate)
                if _is_executable_file(candidate):
                    logger.debug("Found bundled %s at %s", name, candidate)
                    return candidate, ToolSource.BUNDLED

    which_result = shutil.which(name)
    if which_result:
        logger.debug("Using system %s at %s", name, which_result)
        return Path(which_result), ToolSource.SYSTEM

    return None


def resolve_binary(
    name: str,
    *,
    configured_path: Path | None = None,
    resource_dir: Path | None = None,
) -> Path:
    """Resolve a required binary.

    Args:
        name: Binary name (e.g., "ffmpeg").
        configured_path: Optional explicit path override.
        resource_dir: Optional directory holding bundled binaries.

    Returns:
        Path to an existing executable file.

    Raises:
        BinaryNotFoundError: If no candidate location yields an executable.
    """
    found = find_binary(name, configured_path, resource_dir)
    if found is None:
        platform_name = platform_binary_name(name)
        logger.error(
            "Binary %s not found",
            name,
            extra={"binary": name, "platform_name": platform_name},
        )
        raise BinaryNotFoundError(name, platform_name)
    return found[0]


class BinaryResolver:
    """Resolves tool binaries from the configured tool locations."""

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        ffprobe_path: Path | None = None,
        resource_dir: Path | None = None,
    ) -> None:
        self._configured = {"ffmpeg": ffmpeg_path, "ffprobe": ffprobe_path}
        self.resource_dir = resource_dir

    @classmethod
    def from_config(cls, tools_config) -> BinaryResolver:  # noqa: ANN001
        """Create a resolver from a ToolPathsConfig."""
        return cls(
            ffmpeg_path=tools_config.ffmpeg,
            ffprobe_path=tools_config.ffprobe,
            resource_dir=tools_config.resource_dir,
        )

    def resolve(self, name: str) -> Path:
        """Resolve a binary by name, raising BinaryNotFoundError if missing."""
        return resolve_binary(
            name,
            configured_path=self._configured.get(name),
            resource_dir=self.resource_dir,
        )

    def detect(self, name: str) -> ToolInfo:
        """Detect a binary and its version without raising."""
        return detect_tool(
            name,
            configured_path=self._configured.get(name),
            resource_dir=self.resource_dir,
        )


def parse_version_string(version_str: str) -> tuple[int, ...] | None:
    """Parse a version string into a comparable tuple.

    Handles formats like "6.1.1", "n6.1.1" (nightlies) and
    "7.0-static" (static builds).

    Args:
        version_str: Version string to parse.

    Returns:
        Tuple of version components, or None if parsing fails.
    """
    if not version_str:
        return None

    version_str = version_str.lstrip("nv")

    match = re.match(r"(\d+(?:\.\d+)*)", version_str)
    if not match:
        return None

    return tuple(int(p) for p in match.group(1).split("."))


def _run_command(
    args: list[str], timeout: int = DETECTION_TIMEOUT
) -> tuple[str, str, int]:
    """Run a command and capture output.

    Returns:
        Tuple of (stdout, stderr, returncode). returncode is -1 when the
        command could not be run.
    """
    try:
        result = subprocess.run(  # nosec B603 - args are tool paths and fixed flags
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
        return result.stdout, result.stderr, result.returncode
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out: %s", " ".join(args))
        return "", "timeout", -1
    except OSError as e:
        logger.warning("Command failed: %s - %s", " ".join(args), e)
        return "", str(e), -1


def detect_tool(
    name: str,
    configured_path: Path | None = None,
    resource_dir: Path | None = None,
) -> ToolInfo:
    """Detect a tool and query its version.

    Args:
        name: Tool name ("ffmpeg" or "ffprobe").
        configured_path: Optional configured path to the tool.
        resource_dir: Optional bundled binaries directory.

    Returns:
        ToolInfo with detection results.
    """
    info = ToolInfo(name=name, detected_at=datetime.now(timezone.utc))

    found = find_binary(name, configured_path, resource_dir)
    if found is None:
        info.status = ToolStatus.MISSING
        info.status_message = (
            f"{name} ({platform_binary_name(name)}) not found in bundle or PATH"
        )
        return info

    info.path, info.source = found

    stdout, stderr, rc = _run_command([str(info.path), "-version"])
    if rc != 0:
        info.status = ToolStatus.ERROR
        info.status_message = f"Failed to get {name} version: {stderr.strip()}"
        return info

    version_match = re.search(rf"{re.escape(name)} version (\S+)", stdout)
    if version_match:
        info.version = version_match.group(1)
        info.version_tuple = parse_version_string(info.version)
        if info.version_tuple is None:
            logger.warning(
                "Could not parse %s version '%s' into comparable tuple",
                name,
                info.version,
            )

    info.status = ToolStatus.AVAILABLE
    return info
