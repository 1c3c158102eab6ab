"""Built command representation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommandSpec:
    """A fully resolved tool invocation.

    Attributes:
        tool: Binary name the command is meant for ("ffmpeg" or "ffprobe").
        inputs: Input files in -i order.
        args: Arguments excluding the executable itself.
        output: Declared output file, checked after a successful run.
        progress: True if the command writes -progress lines to stderr.
    """

    tool: str
    inputs: tuple[Path, ...]
    args: tuple[str, ...]
    output: Path | None = None
    progress: bool = False

    def argv(self, executable: Path | str) -> list[str]:
        """Return the full argument vector for the given executable."""
        return [str(executable), *self.args]
