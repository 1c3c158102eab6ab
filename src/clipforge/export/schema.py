"""Pydantic models for export requests.

Shared by the CLI job file loader and the HTTP API so both accept the same
document:

    output: /videos/out.mp4
    resolution: 720p
    clips:
      - path: /videos/a.mp4
        trim_start: 0
        trim_end: 4.5
        volume: 0.8
      - path: /videos/b.mp4
        trim_start: 10
        trim_end: 12
        muted: true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from clipforge.errors import InvalidInputError
from clipforge.export.models import RESOLUTION_PRESETS, ClipExportInfo


class ClipModel(BaseModel):
    """One clip of an export request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: Path
    trim_start: float = Field(ge=0)
    trim_end: float = Field(gt=0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    muted: bool = False

    @model_validator(mode="after")
    def validate_trim_range(self) -> ClipModel:
        if self.trim_end <= self.trim_start:
            raise ValueError(
                f"trim_end ({self.trim_end}) must be greater than "
                f"trim_start ({self.trim_start})"
            )
        return self

    def to_clip(self, base_dir: Path | None = None) -> ClipExportInfo:
        path = self.path.expanduser()
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return ClipExportInfo(
            path=path,
            trim_start=self.trim_start,
            trim_end=self.trim_end,
            volume=self.volume,
            muted=self.muted,
        )


class ExportRequestModel(BaseModel):
    """A complete export request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    clips: list[ClipModel] = Field(min_length=1)
    output: Path | None = None
    resolution: str | None = None

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v: str | None) -> str | None:
        if v is None:
            return v
        valid = ["source", *RESOLUTION_PRESETS]
        if v.casefold() not in {name.casefold() for name in valid}:
            raise ValueError(f"resolution must be one of {valid}, got '{v}'")
        return v

    def to_clips(self, base_dir: Path | None = None) -> list[ClipExportInfo]:
        return [clip.to_clip(base_dir) for clip in self.clips]


def format_validation_error(error: ValidationError) -> str:
    """Format a pydantic validation error into a one-line message."""
    errors = error.errors()
    if errors:
        first_error = errors[0]
        loc = ".".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", str(error))
        if loc:
            return f"Invalid export request: {loc}: {msg}"
        return f"Invalid export request: {msg}"
    return f"Invalid export request: {error}"


def parse_export_request(data: Any) -> ExportRequestModel:
    """Validate a decoded export request.

    Raises:
        InvalidInputError: If the document does not match the schema.
    """
    if not isinstance(data, dict):
        raise InvalidInputError("Export request must be a mapping")
    try:
        return ExportRequestModel.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(format_validation_error(e)) from e


def load_job_file(path: Path) -> ExportRequestModel:
    """Load an export request from a YAML or JSON file.

    Raises:
        InvalidInputError: If the file cannot be read, parsed or validated.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise InvalidInputError(f"Cannot read job file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise InvalidInputError(f"Invalid YAML in job file {path}: {e}") from e

    return parse_export_request(data)
