"""Provisioning a runtime version: cached or fetched archive, unpacked image."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from distvault.archive.base import Archive
from distvault.archive.factory import ArchiveFactory
from distvault.cache import CacheStore
from distvault.errors import ExtractIOError
from distvault.fetch.integrity import VerifyHook
from distvault.models.config import DistVaultConfig
from distvault.models.install import InstallResult
from distvault.models.platform import Platform
from distvault.progress import ProgressSink

logger = logging.getLogger(__name__)


class DistroProvisioner:
    """Makes one runtime version available on disk.

    Which version to install is the caller's decision; this class only turns a
    version into a cached archive and an unpacked image directory.

    Example:
        provisioner = DistroProvisioner(DistVaultConfig.from_yaml(path))
        result = await provisioner.install("18.17.0")
        print(result.image_dir)
        await provisioner.close()
    """

    def __init__(
        self,
        config: DistVaultConfig | None = None,
        platform: Platform | None = None,
        factory: ArchiveFactory | None = None,
    ) -> None:
        self.config = config or DistVaultConfig()
        self.platform = platform or self.config.target_platform
        self.layout = self.config.layout
        self.cache = CacheStore(self.config.cache_dir, self.layout)
        self.factory = factory or ArchiveFactory(self.platform, config=self.config)
        self.image_root = Path(self.config.image_dir)

    def image_dir(self, version: str) -> Path:
        return self.image_root / version

    def is_installed(self, version: str) -> bool:
        return self.image_dir(version).is_dir()

    async def obtain(
        self,
        version: str,
        url: str | None = None,
        progress: ProgressSink | None = None,
        verify: VerifyHook | None = None,
    ) -> Archive:
        """Return the archive for version, fetching only on a cache miss.

        A cache entry that no longer opens as an archive (corrupted or
        interrupted in the middle of a download by another tool) is evicted
        and fetched again.
        """
        cache_path = self.cache.path_for(version, self.platform)

        if self.cache.exists(cache_path):
            archive = self.factory.load(cache_path)
            if archive.is_loadable():
                logger.info(f"Using cached archive {cache_path.name}")
                return archive
            logger.warning(f"Cached archive {cache_path.name} is unreadable, fetching again")
            self.cache.remove(cache_path)

        source = url or self.layout.public_url(version, self.platform)
        return await self.factory.fetch(source, cache_path, progress, verify)

    async def install(
        self,
        version: str,
        url: str | None = None,
        progress: ProgressSink | None = None,
        verify: VerifyHook | None = None,
    ) -> InstallResult:
        """Unpack version into its image directory unless it is already there.

        The archive is unpacked into a hidden staging directory next to the
        image directory and renamed into place, so a crash never leaves a
        half-populated image directory.
        """
        image_dir = self.image_dir(version)
        if image_dir.is_dir():
            logger.info(f"Version {version} already installed at {image_dir}")
            return InstallResult(
                version=version,
                platform=self.platform,
                image_dir=image_dir,
                already_installed=True,
            )

        archive = await self.obtain(version, url, progress, verify)

        self.image_root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{version}.", dir=self.image_root))
        try:
            await archive.unpack(staging, progress)
            root = self._archive_root(staging, version)
            try:
                if root == staging:
                    # mkdtemp creates the directory private to the owner
                    os.chmod(staging, 0o755)
                os.rename(root, image_dir)
            except OSError as e:
                raise ExtractIOError(
                    f"Cannot move unpacked {version} into {image_dir}: {e}", archive.path
                ) from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        logger.info(f"Installed {self.layout.name} {version} at {image_dir}")
        return InstallResult(version=version, platform=self.platform, image_dir=image_dir)

    def _archive_root(self, staging: Path, version: str) -> Path:
        """The directory whose contents form the installation.

        Distributions wrap everything in one top-level directory named after
        the archive; archives without a single root are used as-is.
        """
        expected = staging / self.layout.archive_root_dir_name(version, self.platform)
        if expected.is_dir():
            return expected
        children = list(staging.iterdir())
        if len(children) == 1 and children[0].is_dir() and not children[0].is_symlink():
            return children[0]
        return staging

    async def close(self) -> None:
        await self.factory.close()
