"""Shared test fixtures for clipforge.

The fake tools are small Python scripts wrapped in executable shell
launchers so the runner spawns real processes without needing ffmpeg.
"""

import json
import logging
import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from clipforge.config import clear_config_cache
from clipforge.config.models import ClipforgeConfig, ExportConfig, ToolPathsConfig

FAKE_FFPROBE = textwrap.dedent(
    """
    import json, os, sys

    if "-version" in sys.argv:
        print("ffprobe version 6.1.1 Copyright (c) 2007-2023 the FFmpeg developers")
        sys.exit(0)

    path = sys.argv[-1]
    if not os.path.exists(path):
        sys.stderr.write(path + ": No such file or directory\\n")
        sys.exit(1)

    stream = {
        "width": int(os.environ.get("FAKE_WIDTH", "1280")),
        "height": int(os.environ.get("FAKE_HEIGHT", "720")),
        "codec_name": "h264",
        "r_frame_rate": "30/1",
        "duration": os.environ.get("FAKE_DURATION", "10.0"),
    }
    streams = [] if os.environ.get("FAKE_NO_VIDEO") else [stream]
    print(json.dumps({"streams": streams, "format": {"duration": stream["duration"]}}))
    """
)

FAKE_FFMPEG = textwrap.dedent(
    """
    import json, os, sys, time

    args = sys.argv[1:]
    if "-version" in args:
        print("ffmpeg version 6.1.1 Copyright (c) 2000-2023 the FFmpeg developers")
        sys.exit(0)

    log = os.environ.get("FAKE_FFMPEG_LOG")
    if log:
        with open(log, "a") as f:
            f.write(json.dumps(args) + "\\n")

    fail_on = os.environ.get("FAKE_FFMPEG_FAIL_ON")
    if os.environ.get("FAKE_FFMPEG_FAIL") or (fail_on and fail_on in " ".join(args)):
        sys.stderr.write("frame=    0 fps=0.0 q=0.0 size=       0kB\\n")
        sys.stderr.write("Invalid data found when processing input\\n")
        sys.exit(1)

    sleep = float(os.environ.get("FAKE_FFMPEG_SLEEP", "0"))
    duration = None
    if "-t" in args:
        duration = float(args[args.index("-t") + 1])
    if "-progress" in args and duration:
        for step in range(1, 5):
            micros = int(duration * step / 4 * 1_000_000)
            sys.stderr.write("out_time_us=%d\\nprogress=continue\\n" % micros)
            sys.stderr.flush()
            time.sleep(sleep / 4)
        sys.stderr.write("progress=end\\n")
    elif sleep:
        time.sleep(sleep)

    if not os.environ.get("FAKE_FFMPEG_NO_OUTPUT"):
        with open(args[-1], "wb") as f:
            f.write(b"fake media data")
    """
)


def write_tool(directory: Path, name: str, source: str) -> Path:
    """Write a Python script plus an executable launcher named name."""
    script = directory / f"{name}_impl.py"
    script.write_text(source, encoding="utf-8")
    launcher = directory / name
    launcher.write_text(
        f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n', encoding="utf-8"
    )
    launcher.chmod(launcher.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
    return launcher


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep tests away from the user's config file and CLIPFORGE_* variables."""
    for var in list(os.environ):
        if var.startswith("CLIPFORGE_"):
            monkeypatch.delenv(var)
    monkeypatch.setenv("CLIPFORGE_CONFIG_PATH", str(tmp_path / "no-config.toml"))
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def restore_root_logger():
    """Put the root logger back after configure_logging() replaces it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    """Directory holding fake ffmpeg and ffprobe executables."""
    if os.name != "posix":
        pytest.skip("fake tools use POSIX shell launchers")
    directory = tmp_path / "tools"
    directory.mkdir()
    write_tool(directory, "ffmpeg", FAKE_FFMPEG)
    write_tool(directory, "ffprobe", FAKE_FFPROBE)
    return directory


@pytest.fixture
def ffmpeg_calls(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Return a function listing the argv of every fake ffmpeg invocation."""
    log = tmp_path / "ffmpeg_calls.jsonl"
    monkeypatch.setenv("FAKE_FFMPEG_LOG", str(log))

    def read_calls() -> list[list[str]]:
        if not log.exists():
            return []
        return [json.loads(line) for line in log.read_text().splitlines()]

    return read_calls


@pytest.fixture
def fake_config(tools_dir: Path, tmp_path: Path) -> ClipforgeConfig:
    """Configuration pointing at the fake tools with no progress throttle."""
    work = tmp_path / "work"
    work.mkdir()
    return ClipforgeConfig(
        tools=ToolPathsConfig(
            ffmpeg=tools_dir / "ffmpeg",
            ffprobe=tools_dir / "ffprobe",
            resource_dir=None,
        ),
        export=ExportConfig(temp_directory=work, progress_throttle_ms=0),
    )


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    """A placeholder input file (the fake tools never decode it)."""
    path = tmp_path / "input.mp4"
    path.write_bytes(b"not really a video")
    return path
