"""Optional verification hooks for downloaded archives."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Callable

VerifyHook = Callable[[Path], bool]

HASH_CHUNK_SIZE = 1024 * 1024


def file_sha256(path: Path) -> str:
    """Hex SHA-256 digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class Sha256Verifier:
    """Verify hook comparing a file's SHA-256 against an expected digest."""

    def __init__(self, expected: str) -> None:
        self.expected = expected.strip().lower()

    def __call__(self, path: Path) -> bool:
        return file_sha256(path) == self.expected

    def __repr__(self) -> str:
        return f"Sha256Verifier({self.expected[:12]}...)"
