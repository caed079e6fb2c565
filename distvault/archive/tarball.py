"""Tarball variant: compressed tar archives used on POSIX platforms."""

from __future__ import annotations

import logging
import lzma
import os
import shutil
import struct
import tarfile
import zlib
from pathlib import Path
from typing import IO

from distvault.archive.base import Archive, ExtractionLedger
from distvault.archive.paths import resolve_entry
from distvault.errors import MalformedArchiveError
from distvault.models.archive import ArchiveVariant
from distvault.progress import ProgressSink, notify

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
COPY_CHUNK_SIZE = 64 * 1024
# Two zero blocks close a tar stream
END_MARKER_SIZE = 2 * tarfile.BLOCKSIZE

# Raised by the decompressors on corrupt or truncated input. BadGzipFile is
# an OSError, so it must be caught here before it reads as a write failure.
READ_ERRORS = (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError, OSError)


class Tarball(Archive):
    """A gzip (or bzip2/xz) compressed tar archive."""

    variant = ArchiveVariant.TARBALL

    def _read_uncompressed_size(self) -> int | None:
        """Read the ISIZE trailer of a gzip file (size modulo 2**32)."""
        try:
            with open(self.path, "rb") as f:
                if f.read(2) != GZIP_MAGIC:
                    return None
                f.seek(-4, os.SEEK_END)
                (size,) = struct.unpack("<I", f.read(4))
        except (OSError, struct.error):
            return None
        return size

    def is_loadable(self) -> bool:
        try:
            with tarfile.open(self.path, "r:*"):
                return True
        except READ_ERRORS:
            return False

    def _open(self) -> tarfile.TarFile:
        try:
            return tarfile.open(self.path, "r:*")
        except READ_ERRORS as e:
            raise MalformedArchiveError(f"Not a readable tarball: {e}", self.path) from e

    def _next_member(self, tf: tarfile.TarFile) -> tarfile.TarInfo | None:
        try:
            return tf.next()
        except READ_ERRORS as e:
            raise MalformedArchiveError(
                f"Corrupt entry header at offset {tf.offset}: {e}", self.path
            ) from e

    def _extract(
        self,
        destination: Path,
        ledger: ExtractionLedger,
        progress: ProgressSink | None,
    ) -> int:
        total = self.uncompressed_size
        count = 0
        # Directory modes go on last so read-only directories can be filled
        deferred_modes: list[tuple[Path, int]] = []

        with self._open() as tf:
            while (member := self._next_member(tf)) is not None:
                self._extract_member(tf, member, destination, ledger, deferred_modes)
                count += 1
                notify(progress, tf.offset, total)
            self._check_end_marker(tf)

        for path, mode in reversed(deferred_modes):
            os.chmod(path, mode)

        return count

    def _extract_member(
        self,
        tf: tarfile.TarFile,
        member: tarfile.TarInfo,
        destination: Path,
        ledger: ExtractionLedger,
        deferred_modes: list[tuple[Path, int]],
    ) -> None:
        name = member.name
        mode = member.mode & 0o7777

        if member.isdir():
            target = resolve_entry(destination, name, follow_leaf=True)
            if target == destination:
                return
            ledger.make_dirs(target)
            deferred_modes.append((target, mode))
            logger.debug(f"dir  {name}")
            return

        if not (member.isreg() or member.issym() or member.islnk()):
            logger.warning(f"Skipping unsupported entry {name!r} (type {member.type!r})")
            return

        target = resolve_entry(destination, name)
        if target == destination:
            raise MalformedArchiveError(f"Entry {name!r} has no file name", self.path)
        ledger.make_dirs(target.parent)
        ledger.clear(target)

        if member.issym():
            # Stored verbatim; the link target is neither followed nor checked
            os.symlink(member.linkname, target)
            ledger.record(target)
            logger.debug(f"link {name} -> {member.linkname}")
        elif member.islnk():
            source = resolve_entry(destination, member.linkname, follow_leaf=True)
            if not source.is_file():
                raise MalformedArchiveError(
                    f"Hard link {name!r} refers to missing {member.linkname!r}", self.path
                )
            shutil.copyfile(source, target)
            ledger.record(target)
            os.chmod(target, mode)
        else:
            self._write_file(tf, member, target, ledger)
            os.chmod(target, mode)
            logger.debug(f"file {name} ({member.size} bytes, mode {mode:o})")

    def _write_file(
        self,
        tf: tarfile.TarFile,
        member: tarfile.TarInfo,
        target: Path,
        ledger: ExtractionLedger,
    ) -> None:
        try:
            source = tf.extractfile(member)
        except READ_ERRORS as e:
            raise MalformedArchiveError(f"Cannot read {member.name!r}: {e}", self.path) from e
        if source is None:
            raise MalformedArchiveError(f"No data for {member.name!r}", self.path)

        with source, open(target, "wb") as out:
            ledger.record(target)
            while chunk := self._read_chunk(source, member):
                out.write(chunk)

    def _read_chunk(self, source: IO[bytes], member: tarfile.TarInfo) -> bytes:
        try:
            return source.read(COPY_CHUNK_SIZE)
        except READ_ERRORS as e:
            raise MalformedArchiveError(
                f"Truncated or corrupt data in {member.name!r}: {e}", self.path
            ) from e

    def _check_end_marker(self, tf: tarfile.TarFile) -> None:
        """Fail unless the entries are followed by the end-of-archive marker.

        TarFile.next() returns None both at the marker and when the data simply
        runs out after a complete entry, so a stream cut at a header boundary
        would otherwise unpack as a smaller archive.
        """
        try:
            tf.fileobj.seek(tf.offset)
            marker = tf.fileobj.read(END_MARKER_SIZE)
        except READ_ERRORS as e:
            raise MalformedArchiveError(
                f"Truncated archive at offset {tf.offset}: {e}", self.path
            ) from e
        if len(marker) < END_MARKER_SIZE or any(marker):
            raise MalformedArchiveError(
                f"Archive ends at offset {tf.offset} without an end-of-archive marker",
                self.path,
            )
