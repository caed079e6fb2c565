"""Streaming download into the archive cache.

Bytes are written to a hidden temporary file next to the final cache path and
only renamed onto it once the whole stream has arrived. A file visible at the
cache path is therefore always complete.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO

import httpx

from distvault.cache import PARTIAL_SUFFIX
from distvault.errors import CacheWriteError, IntegrityError, TransportError
from distvault.fetch.integrity import VerifyHook
from distvault.models.config import DistVaultConfig
from distvault.progress import ProgressSink, notify

logger = logging.getLogger(__name__)

# Log a debug progress line every N chunks
LOG_EVERY_CHUNKS = 100


def _content_length(response: httpx.Response) -> int | None:
    """Expected body size, or None if the server did not announce one."""
    # A content-encoded body is decoded by httpx, so the header would not match
    if response.headers.get("Content-Encoding", "identity") != "identity":
        return None
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class Fetcher:
    """Streams remote archives into the local cache.

    Example:
        fetcher = Fetcher(config)
        size = await fetcher.stream_to_cache(url, cache_path, progress=sink)
        await fetcher.close()
    """

    def __init__(
        self,
        config: DistVaultConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or DistVaultConfig()
        self.chunk_size = self.config.chunk_size
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                follow_redirects=self.config.follow_redirects,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def stream_to_cache(
        self,
        url: str,
        final_path: Path,
        progress: ProgressSink | None = None,
        verify: VerifyHook | None = None,
    ) -> int:
        """Download url into final_path atomically.

        Args:
            url: Source location
            final_path: Canonical cache path to populate
            progress: Optional sink called with (bytes received, total or None)
            verify: Optional hook run on the complete temporary file

        Returns:
            Number of bytes written

        Raises:
            TransportError: Bad status, connection failure or short stream
            CacheWriteError: The local filesystem refused the write
            IntegrityError: The verify hook rejected the bytes
        """
        final_path = Path(final_path)
        logger.info(f"Fetching {url} -> {final_path}")

        handle = self._create_temp(final_path, url)
        tmp_path = Path(handle.name)

        try:
            with handle:
                received, total = await self._receive(url, handle, progress)
                await asyncio.to_thread(self._sync, handle, url, tmp_path)

            if total is not None and received != total:
                raise TransportError(
                    f"Stream for {url} ended after {received} of {total} bytes", url
                )

            if verify is not None and not await asyncio.to_thread(verify, tmp_path):
                raise IntegrityError(f"Verification failed for {url} ({verify!r})", url)

            self._promote(tmp_path, final_path, url)
        except BaseException:
            # Includes cancellation: never leave the temporary behind
            self._discard(tmp_path)
            raise

        logger.info(f"Cached {received} bytes at {final_path}")
        return received

    def _create_temp(self, final_path: Path, url: str) -> BinaryIO:
        """Open a hidden temporary file in the cache path's own directory."""
        try:
            final_path.parent.mkdir(parents=True, exist_ok=True)
            return tempfile.NamedTemporaryFile(
                dir=final_path.parent,
                prefix=f".{final_path.name}.",
                suffix=PARTIAL_SUFFIX,
                delete=False,
            )
        except OSError as e:
            raise CacheWriteError(
                f"Cannot create temporary file for {final_path}: {e}", url, final_path
            ) from e

    async def _receive(
        self,
        url: str,
        handle: BinaryIO,
        progress: ProgressSink | None,
    ) -> tuple[int, int | None]:
        """Copy the response body into handle, in the order received."""
        received = 0
        chunks = 0
        try:
            async with self.client.stream("GET", url) as response:
                if not response.is_success:
                    raise TransportError(
                        f"Server returned HTTP {response.status_code} for {url}",
                        url,
                        status_code=response.status_code,
                    )

                total = _content_length(response)

                async for chunk in response.aiter_bytes(self.chunk_size):
                    if not chunk:
                        continue
                    try:
                        handle.write(chunk)
                    except OSError as e:
                        raise CacheWriteError(
                            f"Cannot write download of {url}: {e}", url, Path(handle.name)
                        ) from e
                    received += len(chunk)
                    chunks += 1
                    notify(progress, received, total)

                    if chunks % LOG_EVERY_CHUNKS == 0:
                        if total:
                            logger.debug(
                                f"Progress: {received / total * 100:.1f}% "
                                f"({received}/{total} bytes)"
                            )
                        else:
                            logger.debug(f"Downloaded: {received} bytes")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"Transfer of {url} failed: {e}", url) from e

        return received, total

    def _sync(self, handle: BinaryIO, url: str, tmp_path: Path) -> None:
        """Flush the temporary file to disk before it becomes visible."""
        try:
            handle.flush()
            os.fsync(handle.fileno())
        except OSError as e:
            raise CacheWriteError(f"Cannot flush download of {url}: {e}", url, tmp_path) from e

    def _promote(self, tmp_path: Path, final_path: Path, url: str) -> None:
        """Atomically rename the complete temporary onto the cache path."""
        try:
            os.replace(tmp_path, final_path)
        except OSError as e:
            raise CacheWriteError(
                f"Cannot move download into {final_path}: {e}", url, final_path
            ) from e

    def _discard(self, tmp_path: Path) -> None:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Cannot remove partial download {tmp_path}: {e}")
