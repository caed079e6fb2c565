"""Result model for provisioning a distribution."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from distvault.models.platform import Platform


class InstallResult(BaseModel):
    """Outcome of installing one version of a distribution."""

    version: str
    platform: Platform
    image_dir: Path = Field(..., description="Directory holding the unpacked installation")
    already_installed: bool = Field(
        default=False, description="True if nothing was fetched or unpacked"
    )
