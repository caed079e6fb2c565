"""Archive variant model."""

from __future__ import annotations

from enum import Enum


class ArchiveVariant(str, Enum):
    """Archive format a runtime distribution ships in."""

    TARBALL = "tarball"  # gzip'd tar, POSIX platforms
    ZIP = "zip"  # Windows

    @property
    def extension(self) -> str:
        """File extension used by upstream distribution file names."""
        if self is ArchiveVariant.ZIP:
            return ".zip"
        return ".tar.gz"
