"""Entry point for obtaining archives: fetch on a cache miss, load on a hit."""

from __future__ import annotations

import logging
from pathlib import Path

from distvault.archive.base import Archive
from distvault.archive.tarball import Tarball
from distvault.archive.zip import Zip
from distvault.errors import ArchiveNotFoundError, EmptyArchiveError
from distvault.fetch.fetcher import Fetcher
from distvault.fetch.integrity import VerifyHook
from distvault.models.archive import ArchiveVariant
from distvault.models.config import DistVaultConfig
from distvault.models.platform import Platform
from distvault.progress import ProgressSink

logger = logging.getLogger(__name__)

ARCHIVE_TYPES: dict[ArchiveVariant, type[Archive]] = {
    ArchiveVariant.TARBALL: Tarball,
    ArchiveVariant.ZIP: Zip,
}


def open_archive(path: Path, variant: ArchiveVariant) -> Archive:
    """Wrap a file as the archive class for variant."""
    return ARCHIVE_TYPES[variant](path)


class ArchiveFactory:
    """Produces archives of the variant matching a target platform.

    The variant is fixed at construction from the platform (or a layout that
    pins one) and never guessed from file contents.

    Example:
        factory = ArchiveFactory(Platform(os="linux", arch="x64"))
        try:
            archive = factory.load(cache_path)
        except LoadError:
            archive = await factory.fetch(url, cache_path)
        await archive.unpack(install_dir)
    """

    def __init__(
        self,
        platform: Platform | None = None,
        fetcher: Fetcher | None = None,
        config: DistVaultConfig | None = None,
    ) -> None:
        self.config = config or DistVaultConfig()
        self.platform = platform or self.config.target_platform
        self.variant = self.config.layout.variant_for(self.platform)
        self.fetcher = fetcher or Fetcher(self.config)

    async def fetch(
        self,
        source_url: str,
        cache_path: Path,
        progress: ProgressSink | None = None,
        verify: VerifyHook | None = None,
    ) -> Archive:
        """Download source_url into cache_path and wrap it.

        Raises:
            TransportError: The remote side failed or the stream ended early
            CacheWriteError: The cache file could not be written
            IntegrityError: verify rejected the downloaded bytes
        """
        cache_path = Path(cache_path)
        await self.fetcher.stream_to_cache(source_url, cache_path, progress, verify)
        return open_archive(cache_path, self.variant)

    def load(self, cache_path: Path) -> Archive:
        """Wrap an already cached archive. No network access, no deep checks.

        Raises:
            ArchiveNotFoundError: Nothing (or not a file) at cache_path
            EmptyArchiveError: cache_path is a zero-length file
        """
        cache_path = Path(cache_path)
        if not cache_path.is_file():
            raise ArchiveNotFoundError(f"No cached archive at {cache_path}", cache_path)
        if cache_path.stat().st_size == 0:
            raise EmptyArchiveError(f"Cached archive is empty: {cache_path}", cache_path)

        logger.debug(f"Loaded cached {self.variant.value} {cache_path}")
        return open_archive(cache_path, self.variant)

    async def close(self) -> None:
        await self.fetcher.close()
