"""Data models for external tool information."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


class ToolStatus(Enum):
    """Status of an external tool."""

    AVAILABLE = "available"  # Tool found and version detected
    MISSING = "missing"  # Tool not found in config, bundle or PATH
    ERROR = "error"  # Tool found but version query failed


class ToolSource(Enum):
    """Where a resolved binary came from."""

    CONFIGURED = "configured"
    BUNDLED = "bundled"
    SYSTEM = "system"


@dataclass
class ToolInfo:
    """Detection result for one external tool."""

    name: str
    path: Path | None = None
    source: ToolSource | None = None
    version: str | None = None
    version_tuple: tuple[int, ...] | None = None  # Parsed version for comparison
    status: ToolStatus = ToolStatus.MISSING
    status_message: str | None = None
    detected_at: datetime | None = None

    def is_available(self) -> bool:
        """Return True if the tool is available and usable."""
        return self.status == ToolStatus.AVAILABLE

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "path": str(self.path) if self.path else None,
            "source": self.source.value if self.source else None,
            "version": self.version,
            "status": self.status.value,
            "status_message": self.status_message,
        }
