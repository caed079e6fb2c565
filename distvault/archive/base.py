"""Common archive interface shared by the tarball and zip variants."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from abc import ABC, abstractmethod
from functools import cached_property
from pathlib import Path
from typing import ClassVar

from distvault.errors import ExtractError, ExtractIOError
from distvault.models.archive import ArchiveVariant
from distvault.progress import ProgressSink

logger = logging.getLogger(__name__)


class ExtractionLedger:
    """Records what an extraction created so a failure can be rolled back."""

    def __init__(self, destination: Path) -> None:
        self.destination = destination
        self.created: list[Path] = []

    def record(self, path: Path) -> None:
        self.created.append(path)

    def make_dirs(self, path: Path) -> None:
        """Create path and any missing parents, recording each new directory."""
        missing: list[Path] = []
        current = path
        while not current.is_dir():
            missing.append(current)
            if current.parent == current:
                break
            current = current.parent
        for directory in reversed(missing):
            if os.path.lexists(directory) and not directory.is_dir():
                # Only entries of this archive may be replaced, never the
                # destination itself or anything above it
                if not self._inside(directory):
                    raise ExtractIOError(f"Not a directory: {directory}")
                self.clear(directory)
            directory.mkdir()
            self.record(directory)

    def _inside(self, path: Path) -> bool:
        return path != self.destination and path.is_relative_to(self.destination)

    def clear(self, path: Path) -> None:
        """Remove a file or link occupying path before it is rewritten."""
        if path.is_symlink() or path.is_file():
            path.unlink()

    def rollback(self) -> None:
        """Best-effort removal of everything this extraction created.

        The destination itself (and any parents) are in the record when this
        extraction created them, so a fresh destination disappears entirely.
        """
        for path in reversed(self.created):
            try:
                if path.is_symlink() or path.is_file():
                    path.unlink()
                elif path.is_dir():
                    shutil.rmtree(path)
            except OSError as e:
                logger.warning(f"Cannot clean up {path} after failed extraction: {e}")


class Archive(ABC):
    """A complete, locally available runtime distribution archive.

    Instances are obtained from ArchiveFactory.fetch() or ArchiveFactory.load()
    and only read the backing file; they never delete or move it.
    """

    variant: ClassVar[ArchiveVariant]

    def __init__(self, path: Path) -> None:
        self._path = Path(path).absolute()

    @property
    def path(self) -> Path:
        """Absolute path of the backing file."""
        return self._path

    @property
    def compressed_size(self) -> int:
        """Size of the backing file in bytes."""
        return self._path.stat().st_size

    @cached_property
    def uncompressed_size(self) -> int | None:
        """Advisory payload size for progress reporting, None if unknown."""
        return self._read_uncompressed_size()

    async def unpack(self, destination: Path, progress: ProgressSink | None = None) -> None:
        """Unpack into destination without blocking the event loop."""
        await asyncio.to_thread(self.unpack_sync, destination, progress)

    def unpack_sync(self, destination: Path, progress: ProgressSink | None = None) -> None:
        """Unpack into destination, creating it if needed.

        Raises:
            MalformedArchiveError: Corrupt, truncated or wrong-format bytes
            UnsafePathError: An entry would land outside destination
            ExtractIOError: Writing to destination failed

        On failure the destination is cleaned up: removed entirely if this call
        created it, otherwise stripped of every path this call created.
        """
        destination = Path(destination).absolute()
        ledger = ExtractionLedger(destination)
        start_time = time.time()
        logger.info(f"Unpacking {self.path.name} ({self.variant.value}) into {destination}")

        try:
            ledger.make_dirs(destination)
            count = self._extract(destination, ledger, progress)
        except ExtractError as e:
            if e.archive_path is None:
                e.archive_path = self.path
            logger.error(f"Unpacking {self.path.name} failed: {e}")
            ledger.rollback()
            raise
        except OSError as e:
            logger.error(f"Unpacking {self.path.name} failed: {e}")
            ledger.rollback()
            raise ExtractIOError(f"Cannot write into {destination}: {e}", self.path) from e

        logger.info(
            f"Unpacked {count} entries from {self.path.name} "
            f"in {time.time() - start_time:.2f}s"
        )

    @abstractmethod
    def _extract(
        self,
        destination: Path,
        ledger: ExtractionLedger,
        progress: ProgressSink | None,
    ) -> int:
        """Materialize every entry in archive order. Returns entry count."""
        ...

    @abstractmethod
    def _read_uncompressed_size(self) -> int | None:
        ...

    @abstractmethod
    def is_loadable(self) -> bool:
        """Cheap structural probe: does the file open as this variant?"""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"
