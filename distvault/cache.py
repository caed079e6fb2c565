"""Cache path and presence bookkeeping.

The store never downloads or reads archive bytes; it only maps cache keys to
paths and answers stat-style questions about them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from distvault.models.layout import DistroLayout
from distvault.models.platform import Platform

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"


class CacheStore:
    """Maps (version, platform) keys to archive files under a cache directory."""

    def __init__(self, cache_dir: Path, layout: DistroLayout | None = None) -> None:
        self.cache_dir = Path(cache_dir)
        self.layout = layout or DistroLayout()

    def path_for(self, version: str, platform: Platform) -> Path:
        """Canonical cache path for a key. Pure: same inputs, same path."""
        return self.cache_dir / self.layout.archive_file_name(version, platform)

    def exists(self, path: Path) -> bool:
        """True iff a non-empty file is present at path.

        A zero-length file is a miss: it can never be a valid archive.
        """
        try:
            stat = Path(path).stat()
        except OSError:
            return False
        return stat.st_size > 0 and Path(path).is_file()

    def remove(self, path: Path) -> bool:
        """Evict a cache entry. Returns False if there was nothing to remove."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Evicted cache entry {path}")
        return True

    def entries(self) -> list[Path]:
        """All complete cache files, sorted by name."""
        if not self.cache_dir.exists():
            return []
        return sorted(
            p
            for p in self.cache_dir.iterdir()
            if not p.name.endswith(PARTIAL_SUFFIX) and self.exists(p)
        )

    def discard_partials(self) -> int:
        """Delete temporaries left behind by interrupted fetches.

        Only safe while no fetch into this cache directory is running.
        """
        if not self.cache_dir.exists():
            return 0
        count = 0
        for p in self.cache_dir.glob(f".*{PARTIAL_SUFFIX}"):
            try:
                p.unlink()
                count += 1
            except OSError as e:
                logger.warning(f"Cannot remove partial download {p}: {e}")
        return count
