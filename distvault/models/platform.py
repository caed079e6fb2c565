"""Target platform model."""

from __future__ import annotations

import platform as _platform
import sys

from pydantic import BaseModel, ConfigDict, Field, field_validator

from distvault.models.archive import ArchiveVariant

# Host names -> names used in upstream distribution file names
OS_ALIASES = {
    "linux": "linux",
    "darwin": "darwin",
    "macos": "darwin",
    "win32": "win",
    "windows": "win",
    "win": "win",
    "cygwin": "win",
}

ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armv7l",
}


class Platform(BaseModel):
    """An (os, arch) pair a distribution is built for."""

    model_config = ConfigDict(frozen=True)

    os: str = Field(..., description="Operating system: linux, darwin or win")
    arch: str = Field(..., description="CPU architecture: x64, x86, arm64, armv7l")

    @field_validator("os")
    @classmethod
    def _normalize_os(cls, value: str) -> str:
        key = value.lower()
        if key not in OS_ALIASES:
            raise ValueError(f"Unsupported operating system: {value}")
        return OS_ALIASES[key]

    @field_validator("arch")
    @classmethod
    def _normalize_arch(cls, value: str) -> str:
        key = value.lower()
        if key not in ARCH_ALIASES:
            raise ValueError(f"Unsupported architecture: {value}")
        return ARCH_ALIASES[key]

    @classmethod
    def current(cls) -> Platform:
        """Detect the host platform."""
        os_name = "win" if sys.platform.startswith("win") else sys.platform
        return cls(os=os_name, arch=_platform.machine() or "x64")

    @property
    def is_windows(self) -> bool:
        return self.os == "win"

    @property
    def variant(self) -> ArchiveVariant:
        """Archive format distributions for this platform ship in."""
        return ArchiveVariant.ZIP if self.is_windows else ArchiveVariant.TARBALL

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"
