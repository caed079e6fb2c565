"""Tests for the archive factory."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from distvault.archive import ArchiveFactory, Tarball, Zip
from distvault.errors import (
    ArchiveNotFoundError,
    EmptyArchiveError,
    LoadError,
    MalformedArchiveError,
    TransportError,
)
from distvault.fetch import Fetcher
from distvault.models import DistroLayout, DistVaultConfig
from distvault.models.archive import ArchiveVariant

URL = "https://dist.example.org/v1.2.3/node-v1.2.3-linux-x64.tar.gz"


@pytest.fixture
def offline(serve):
    """A factory whose client records every request it would make."""

    def build(platform):
        client, seen = serve({})
        return ArchiveFactory(platform, fetcher=Fetcher(client=client)), seen

    return build


class TestLoad:
    """Tests for ArchiveFactory.load."""

    def test_missing_file(self, offline, linux, temp_dir: Path):
        factory, seen = offline(linux)

        with pytest.raises(ArchiveNotFoundError) as exc_info:
            factory.load(temp_dir / "absent.tar.gz")

        assert isinstance(exc_info.value, LoadError)
        assert exc_info.value.path == temp_dir / "absent.tar.gz"
        assert seen == []

    def test_directory_is_not_an_archive(self, offline, linux, temp_dir: Path):
        factory, _ = offline(linux)

        with pytest.raises(ArchiveNotFoundError):
            factory.load(temp_dir)

    def test_zero_length_file(self, offline, linux, temp_dir: Path):
        factory, _ = offline(linux)
        path = temp_dir / "empty.tar.gz"
        path.touch()

        with pytest.raises(EmptyArchiveError):
            factory.load(path)

    def test_load_makes_no_requests(
        self, offline, linux, sample_tree: Path, make_tarball, temp_dir: Path
    ):
        factory, seen = offline(linux)
        path = make_tarball(sample_tree, temp_dir / "node.tar.gz")

        archive = factory.load(path)

        assert isinstance(archive, Tarball)
        assert archive.path == path
        assert seen == []

    def test_load_does_not_inspect_contents(self, offline, linux, temp_dir: Path):
        factory, _ = offline(linux)
        path = temp_dir / "garbage.tar.gz"
        path.write_bytes(b"garbage")

        archive = factory.load(path)

        assert archive.is_loadable() is False


class TestVariantSelection:
    """The variant follows the platform, never the file bytes."""

    def test_platform_variants(self, linux, windows):
        assert ArchiveFactory(linux).variant == ArchiveVariant.TARBALL
        assert ArchiveFactory(windows).variant == ArchiveVariant.ZIP

    def test_layout_can_pin_the_variant(self, windows):
        config = DistVaultConfig(layout=DistroLayout(name="yarn", variant=ArchiveVariant.TARBALL))

        assert ArchiveFactory(windows, config=config).variant == ArchiveVariant.TARBALL

    def test_windows_wraps_tar_bytes_as_zip(
        self, offline, windows, sample_tree: Path, make_tarball, temp_dir: Path
    ):
        factory, _ = offline(windows)
        archive = factory.load(make_tarball(sample_tree, temp_dir / "node.zip"))

        assert isinstance(archive, Zip)
        with pytest.raises(MalformedArchiveError):
            archive.unpack_sync(temp_dir / "out")


@pytest.mark.mock
class TestFetch:
    """Tests for ArchiveFactory.fetch."""

    @pytest.mark.asyncio
    async def test_fetch_then_unpack(
        self, serve, linux, sample_tree: Path, make_tarball, temp_dir: Path
    ):
        data = make_tarball(sample_tree, temp_dir / "source.tar.gz").read_bytes()
        client, seen = serve({URL: lambda r: httpx.Response(200, content=data)})
        factory = ArchiveFactory(linux, fetcher=Fetcher(client=client))
        cache_path = temp_dir / "cache" / "node-v1.2.3-linux-x64.tar.gz"

        archive = await factory.fetch(URL, cache_path)
        await archive.unpack(temp_dir / "out")

        assert isinstance(archive, Tarball)
        assert cache_path.read_bytes() == data
        assert (temp_dir / "out" / "bin" / "node").exists()
        assert len(seen) == 1

        # The fetched file is now loadable without the network
        assert factory.load(cache_path).path == archive.path
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_no_entry(self, serve, linux, temp_dir: Path):
        client, _ = serve({URL: lambda r: httpx.Response(503)})
        factory = ArchiveFactory(linux, fetcher=Fetcher(client=client))
        cache_path = temp_dir / "cache" / "node-v1.2.3-linux-x64.tar.gz"

        with pytest.raises(TransportError) as exc_info:
            await factory.fetch(URL, cache_path)

        assert exc_info.value.status_code == 503
        assert exc_info.value.url == URL
        assert not cache_path.exists()
        with pytest.raises(ArchiveNotFoundError):
            factory.load(cache_path)
