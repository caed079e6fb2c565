"""Naming policy for a runtime distribution's files."""

from __future__ import annotations

from pydantic import BaseModel, Field

from distvault.models.archive import ArchiveVariant
from distvault.models.platform import Platform


class DistroLayout(BaseModel):
    """How a runtime's archives are named and where they are published.

    Example:
        layout = DistroLayout(name="node", server_root="https://nodejs.org/dist")
        layout.archive_file_name("18.17.0", Platform(os="linux", arch="x64"))
        # -> "node-v18.17.0-linux-x64.tar.gz"
    """

    name: str = Field(default="node", description="Runtime name used as file prefix")
    server_root: str = Field(
        default="https://nodejs.org/dist",
        description="Base URL distributions are published under",
    )
    versioned_dirs: bool = Field(
        default=True,
        description="Whether the server nests files under a v<version>/ directory",
    )
    platform_specific: bool = Field(
        default=True,
        description="Whether file names carry the <os>-<arch> suffix",
    )
    variant: ArchiveVariant | None = Field(
        default=None,
        description="Archive format for every platform (platform default if unset)",
    )

    def variant_for(self, platform: Platform) -> ArchiveVariant:
        """Archive format published for platform."""
        return self.variant or platform.variant

    def archive_root_dir_name(self, version: str, platform: Platform) -> str:
        """Name of the single top-level directory inside the archive."""
        if self.platform_specific:
            return f"{self.name}-v{version}-{platform}"
        return f"{self.name}-v{version}"

    def archive_file_name(self, version: str, platform: Platform) -> str:
        extension = self.variant_for(platform).extension
        return self.archive_root_dir_name(version, platform) + extension

    def public_url(self, version: str, platform: Platform) -> str:
        """Download URL on the public distribution server."""
        root = self.server_root.rstrip("/")
        file_name = self.archive_file_name(version, platform)
        if self.versioned_dirs:
            return f"{root}/v{version}/{file_name}"
        return f"{root}/{file_name}"
