"""Downloading archives into the cache."""

from distvault.fetch.fetcher import Fetcher
from distvault.fetch.integrity import Sha256Verifier, VerifyHook, file_sha256

__all__ = ["Fetcher", "Sha256Verifier", "VerifyHook", "file_sha256"]
