"""Data models for DistVault."""

from distvault.models.archive import ArchiveVariant
from distvault.models.config import DistVaultConfig
from distvault.models.install import InstallResult
from distvault.models.layout import DistroLayout
from distvault.models.platform import Platform

__all__ = [
    "ArchiveVariant",
    "DistVaultConfig",
    "DistroLayout",
    "InstallResult",
    "Platform",
]
