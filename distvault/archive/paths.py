"""Entry path validation for archive extraction (zip-slip / path traversal)."""

from __future__ import annotations

from pathlib import Path, PureWindowsPath

from distvault.errors import UnsafePathError


def normalize_entry_name(name: str) -> tuple[str, ...]:
    """Split an archive entry name into safe path components.

    - Converts backslashes to slashes
    - Drops empty and "." components (so "./bin/node" -> ("bin", "node"))
    - Rejects absolute paths, drive letters and any ".." component

    An empty tuple means the entry names the destination root itself.
    """
    path = name.replace("\\", "/")

    if path.startswith("/") or PureWindowsPath(path).drive:
        raise UnsafePathError(f"Absolute entry path: {name!r}", name)

    parts: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise UnsafePathError(f"Entry path escapes destination: {name!r}", name)
        parts.append(part)
    return tuple(parts)


def resolve_entry(destination: Path, name: str, follow_leaf: bool = False) -> Path:
    """Map an entry name to a path inside destination.

    Besides the lexical check, the on-disk location is resolved so that a
    symlink written by an earlier entry cannot redirect later writes outside
    the tree. The leaf itself is only followed when follow_leaf is set
    (directories); files and links replace whatever sits at the leaf.
    """
    parts = normalize_entry_name(name)
    if not parts:
        return destination
    target = destination.joinpath(*parts)

    root = destination.resolve()
    checked = target.resolve() if follow_leaf else target.parent.resolve()
    if checked != root and not checked.is_relative_to(root):
        raise UnsafePathError(f"Entry resolves outside destination: {name!r}", name)
    return target
