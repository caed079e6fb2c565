"""DistVault - fetch, cache and unpack runtime distribution archives."""

from distvault.archive import Archive, ArchiveFactory, Tarball, Zip
from distvault.cache import CacheStore
from distvault.errors import (
    ArchiveNotFoundError,
    CacheWriteError,
    DistVaultError,
    EmptyArchiveError,
    ExtractError,
    ExtractIOError,
    FetchError,
    IntegrityError,
    LoadError,
    MalformedArchiveError,
    TransportError,
    UnsafePathError,
)
from distvault.fetch import Fetcher, Sha256Verifier
from distvault.models import ArchiveVariant, DistroLayout, DistVaultConfig, Platform
from distvault.provision import DistroProvisioner

__version__ = "0.1.0"
__all__ = [
    # Pipeline
    "Archive",
    "ArchiveFactory",
    "ArchiveVariant",
    "CacheStore",
    "DistroProvisioner",
    "Fetcher",
    "Sha256Verifier",
    "Tarball",
    "Zip",
    # Configuration
    "DistVaultConfig",
    "DistroLayout",
    "Platform",
    # Errors
    "DistVaultError",
    "FetchError",
    "TransportError",
    "CacheWriteError",
    "IntegrityError",
    "LoadError",
    "ArchiveNotFoundError",
    "EmptyArchiveError",
    "ExtractError",
    "MalformedArchiveError",
    "UnsafePathError",
    "ExtractIOError",
]
