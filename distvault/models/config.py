"""Configuration model for the fetch/cache/unpack pipeline."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from distvault.models.layout import DistroLayout
from distvault.models.platform import Platform

DATA_DIR_ENV = "DISTVAULT_DATA_DIR"
DEFAULT_CHUNK_SIZE = 64 * 1024


class DistVaultConfig(BaseModel):
    """Complete pipeline configuration."""

    data_dir: Path = Field(default=Path("./data"), description="Root for cache and images")
    cache_dir: Path | None = Field(default=None, description="Where archives are cached")
    image_dir: Path | None = Field(default=None, description="Where versions are unpacked")
    layout: DistroLayout = Field(default_factory=DistroLayout)
    platform: Platform | None = Field(
        default=None, description="Target platform override (host if unset)"
    )
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0, description="Read size in bytes")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    follow_redirects: bool = Field(default=True)

    @model_validator(mode="after")
    def _derive_dirs(self) -> DistVaultConfig:
        self.data_dir = self.data_dir.expanduser()
        if self.cache_dir is None:
            self.cache_dir = self.data_dir / "cache"
        if self.image_dir is None:
            self.image_dir = self.data_dir / "images"
        return self

    @property
    def target_platform(self) -> Platform:
        return self.platform or Platform.current()

    @classmethod
    def from_yaml(cls, path: Path) -> DistVaultConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DistVaultConfig:
        """Build configuration, letting DISTVAULT_DATA_DIR override data_dir."""
        data = dict(data)
        env_dir = os.environ.get(DATA_DIR_ENV)
        if env_dir:
            data["data_dir"] = env_dir
        return cls.model_validate(data)
