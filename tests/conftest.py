"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io
import os
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Generator

import httpx
import pytest

from distvault.models.layout import DistroLayout
from distvault.models.platform import Platform

os.environ.pop("DISTVAULT_DATA_DIR", None)

BASE_URL = "https://dist.example.org"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def linux() -> Platform:
    return Platform(os="linux", arch="x64")


@pytest.fixture
def windows() -> Platform:
    return Platform(os="win", arch="x64")


@pytest.fixture
def layout() -> DistroLayout:
    return DistroLayout(name="node", server_root=BASE_URL)


@pytest.fixture
def payload() -> bytes:
    """Deterministic bytes standing in for a remote archive."""
    return bytes(range(256)) * 400


@pytest.fixture
def sample_tree(temp_dir: Path) -> Path:
    """A small installation tree: varied modes, a symlink, nested dirs."""
    root = temp_dir / "sample"
    (root / "bin").mkdir(parents=True)
    (root / "lib" / "node_modules" / "npm").mkdir(parents=True)

    node = root / "bin" / "node"
    node.write_bytes(b"#!/bin/sh\necho node\n")
    node.chmod(0o755)

    readme = root / "lib" / "README.md"
    readme.write_text("runtime readme\n")
    readme.chmod(0o644)

    secret = root / "lib" / "node_modules" / "npm" / "config"
    secret.write_text("token=abc\n")
    secret.chmod(0o600)

    (root / "bin" / "npm").symlink_to("../lib/node_modules/npm/config")
    return root


def build_tarball(source: Path, output: Path, arcname: str = "") -> Path:
    """Pack a directory into a .tar.gz, entries relative to arcname."""
    with tarfile.open(output, "w:gz") as tf:
        for path in sorted(source.rglob("*")):
            name = path.relative_to(source).as_posix()
            tf.add(path, arcname=f"{arcname}/{name}" if arcname else name, recursive=False)
    return output


def build_zip(source: Path, output: Path, arcname: str = "") -> Path:
    """Pack a directory into a .zip, following symlinks."""
    with zipfile.ZipFile(output, "w", zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source.rglob("*")):
            name = path.relative_to(source).as_posix()
            zf.write(path, arcname=f"{arcname}/{name}" if arcname else name)
    return output


def tarball_with(output: Path, entries: list[tuple[tarfile.TarInfo, bytes | None]]) -> Path:
    """Write a .tar.gz from hand-made TarInfo entries (no name checks)."""
    with tarfile.open(output, "w:gz") as tf:
        for info, data in entries:
            if data is not None:
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
            else:
                tf.addfile(info)
    return output


@pytest.fixture
def serve() -> Callable[..., tuple[httpx.AsyncClient, list[httpx.Request]]]:
    """Build an httpx client answering from a route table.

    Routes map URL -> httpx.Response, or -> callable(request) returning one.
    Returns the client and the list of requests it has seen.
    """

    def factory(routes: dict[str, Any]) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404)
            if callable(route):
                return route(request)
            return route

        return httpx.AsyncClient(transport=httpx.MockTransport(handler)), seen

    return factory


@pytest.fixture
def make_tarball() -> Callable[..., Path]:
    return build_tarball


@pytest.fixture
def make_zip() -> Callable[..., Path]:
    return build_zip


@pytest.fixture
def make_raw_tarball() -> Callable[..., Path]:
    return tarball_with


# Markers for test categories
def pytest_configure(config):
    config.addinivalue_line("markers", "mock: tests using a mocked HTTP transport")
    config.addinivalue_line("markers", "posix: tests relying on POSIX permission bits")
