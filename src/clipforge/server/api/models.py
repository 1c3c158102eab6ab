"""Request models for API endpoints."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ProbeRequestModel(BaseModel):
    """Body of POST /api/probe."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: Path
