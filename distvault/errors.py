"""Exception hierarchy for fetching, loading and unpacking archives."""

from __future__ import annotations

from pathlib import Path


class DistVaultError(Exception):
    """Base class for all DistVault errors."""


class FetchError(DistVaultError):
    """Fetching a remote archive into the cache failed."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class TransportError(FetchError):
    """The remote side failed: bad status, connection error or short stream.

    Safe to retry; the cache path is left untouched.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code


class CacheWriteError(FetchError):
    """Writing the downloaded bytes to the local cache failed."""

    retryable = False

    def __init__(self, message: str, url: str | None = None, path: Path | None = None) -> None:
        super().__init__(message, url)
        self.path = path


class IntegrityError(FetchError):
    """A verification hook rejected the downloaded bytes."""

    retryable = False


class LoadError(DistVaultError):
    """A cache path does not hold a usable archive."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class ArchiveNotFoundError(LoadError):
    """Nothing exists at the cache path."""


class EmptyArchiveError(LoadError):
    """The cache path holds a zero-length file."""


class ExtractError(DistVaultError):
    """Unpacking an archive failed."""

    def __init__(self, message: str, archive_path: Path | None = None) -> None:
        super().__init__(message)
        self.archive_path = archive_path


class MalformedArchiveError(ExtractError):
    """The archive bytes are corrupt, truncated or of the wrong format."""


class UnsafePathError(ExtractError):
    """An entry would be written outside the destination directory."""

    def __init__(self, message: str, entry: str, archive_path: Path | None = None) -> None:
        super().__init__(message, archive_path)
        self.entry = entry


class ExtractIOError(ExtractError):
    """Writing to the destination directory failed."""
