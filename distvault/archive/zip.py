"""Zip variant: archives used for Windows distributions."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import zipfile
import zlib
from pathlib import Path

from distvault.archive.base import Archive, ExtractionLedger
from distvault.archive.paths import normalize_entry_name, resolve_entry
from distvault.errors import MalformedArchiveError
from distvault.models.archive import ArchiveVariant
from distvault.progress import ProgressSink, notify

logger = logging.getLogger(__name__)

# MS-DOS / Windows attribute bits kept in the low 16 bits of external_attr
FILE_ATTRIBUTE_READONLY = 0x01
FILE_ATTRIBUTE_HIDDEN = 0x02
FILE_ATTRIBUTE_SYSTEM = 0x04
FILE_ATTRIBUTE_ARCHIVE = 0x20
FILE_ATTRIBUTE_NORMAL = 0x80
SETTABLE_ATTRIBUTES = (
    FILE_ATTRIBUTE_READONLY
    | FILE_ATTRIBUTE_HIDDEN
    | FILE_ATTRIBUTE_SYSTEM
    | FILE_ATTRIBUTE_ARCHIVE
)

WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH

READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError)


def windows_attributes(info: zipfile.ZipInfo) -> int:
    """Settable Windows attributes recorded for a zip entry."""
    return info.external_attr & 0xFFFF & SETTABLE_ATTRIBUTES


def apply_windows_attributes(path: Path, attributes: int) -> None:
    """Apply Windows file attributes to an extracted file.

    On Windows the attributes are set as stored. Elsewhere only the read-only
    bit has a counterpart: it clears the write permission bits.
    """
    if os.name == "nt":
        import ctypes

        value = attributes or FILE_ATTRIBUTE_NORMAL
        if not ctypes.windll.kernel32.SetFileAttributesW(str(path), value):
            raise ctypes.WinError()
    elif attributes & FILE_ATTRIBUTE_READONLY:
        mode = stat.S_IMODE(path.stat().st_mode)
        os.chmod(path, mode & ~WRITE_BITS)


class Zip(Archive):
    """A zip archive."""

    variant = ArchiveVariant.ZIP

    def _read_uncompressed_size(self) -> int | None:
        """Sum of entry sizes from the central directory."""
        try:
            with zipfile.ZipFile(self.path) as zf:
                return sum(info.file_size for info in zf.infolist())
        except (zipfile.BadZipFile, OSError):
            return None

    def is_loadable(self) -> bool:
        return zipfile.is_zipfile(self.path)

    def _open(self) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(self.path)
        except zipfile.BadZipFile as e:
            raise MalformedArchiveError(f"Not a readable zip file: {e}", self.path) from e

    def _extract(
        self,
        destination: Path,
        ledger: ExtractionLedger,
        progress: ProgressSink | None,
    ) -> int:
        total = self.uncompressed_size
        done = 0
        # Directory attributes go on last so read-only directories can be filled
        deferred_attributes: list[tuple[Path, int]] = []

        with self._open() as zf:
            infos = zf.infolist()

            # The central directory is known up front: reject before writing
            for info in infos:
                normalize_entry_name(info.filename)

            for info in infos:
                self._extract_member(zf, info, destination, ledger, deferred_attributes)
                done += info.file_size
                notify(progress, done, total)

        for path, attributes in reversed(deferred_attributes):
            apply_windows_attributes(path, attributes)

        return len(infos)

    def _extract_member(
        self,
        zf: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        destination: Path,
        ledger: ExtractionLedger,
        deferred_attributes: list[tuple[Path, int]],
    ) -> None:
        if info.is_dir():
            target = resolve_entry(destination, info.filename, follow_leaf=True)
            if target != destination:
                ledger.make_dirs(target)
                deferred_attributes.append((target, windows_attributes(info)))
            return

        target = resolve_entry(destination, info.filename)
        if target == destination:
            raise MalformedArchiveError(f"Entry {info.filename!r} has no file name", self.path)
        ledger.make_dirs(target.parent)
        ledger.clear(target)

        try:
            source = zf.open(info)
        except READ_ERRORS as e:
            raise MalformedArchiveError(f"Cannot read {info.filename!r}: {e}", self.path) from e

        with source, open(target, "wb") as out:
            ledger.record(target)
            try:
                shutil.copyfileobj(source, out)
            except READ_ERRORS as e:
                raise MalformedArchiveError(
                    f"Corrupt data in {info.filename!r}: {e}", self.path
                ) from e

        apply_windows_attributes(target, windows_attributes(info))
        logger.debug(f"file {info.filename} ({info.file_size} bytes)")
