"""Archive variants and the factory that produces them."""

from distvault.archive.base import Archive
from distvault.archive.factory import ARCHIVE_TYPES, ArchiveFactory, open_archive
from distvault.archive.tarball import Tarball
from distvault.archive.zip import Zip

__all__ = ["Archive", "ArchiveFactory", "ARCHIVE_TYPES", "Tarball", "Zip", "open_archive"]
