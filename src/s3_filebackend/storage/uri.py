"""
Virtual storage path parsing.

Provides consistent parsing and validation of virtual store paths of the form
``scheme://backend/container/relative/path``. Parsing is purely syntactic:
it knows nothing about buckets or key prefixes.
"""
from __future__ import annotations

from dataclasses import dataclass
import re

from ..path_safety import safe_relpath
from .errors import InvalidPathError

__all__ = ["StoragePath", "parse_storage_path", "extension_from_path"]

_PATH_PATTERN = re.compile(r"^([a-z][a-z0-9+.-]*)://(.*)$")


@dataclass(frozen=True)
class StoragePath:
    """
    Parsed components of a virtual storage path.

    Attributes:
        scheme: Path scheme (e.g. "mwstore")
        backend: Backend name segment
        container: Logical container name
        rel_path: Path below the container ("" for the container root)
        original: Original path string for error messages
    """
    scheme: str
    backend: str
    container: str
    rel_path: str
    original: str


def parse_storage_path(path: str, *, allow_empty: bool = False) -> StoragePath:
    """
    Parse and validate a virtual storage path.

    Validation:
    - Requires scheme, backend and container segments
    - Rejects '..' segments and backslashes anywhere in the relative part
    - Rejects relative parts whose percent-encoded form exceeds 1024 bytes
    - Rejects an empty relative part unless ``allow_empty`` (directory operations)

    Args:
        path: Virtual storage path to parse
        allow_empty: Accept a path naming only the container

    Returns:
        StoragePath with validated components

    Raises:
        InvalidPathError: If the path is malformed or unsafe

    Examples:
        >>> parse_storage_path("mwstore://local-backend/t1-public/a/ab/Foo.png")
        StoragePath(scheme='mwstore', backend='local-backend', container='t1-public', rel_path='a/ab/Foo.png', ...)

        >>> parse_storage_path("mwstore://local-backend/t1-public", allow_empty=True)
        StoragePath(scheme='mwstore', backend='local-backend', container='t1-public', rel_path='', ...)
    """
    if not path:
        raise InvalidPathError("storage path cannot be empty")

    match = _PATH_PATTERN.match(path)
    if not match:
        raise InvalidPathError(f"Invalid storage path, expected scheme://backend/container/path: {path}")

    scheme, remainder = match.groups()

    parts = remainder.split("/", 2)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise InvalidPathError(f"Storage path missing backend or container: {path}")

    backend, container = parts[0], parts[1]
    rel_path = parts[2] if len(parts) == 3 else ""

    if container in (".", "..") or "\\" in container:
        raise InvalidPathError(f"Invalid container name: {path}")

    rel_path = safe_relpath(rel_path, allow_empty=allow_empty)

    return StoragePath(
        scheme=scheme,
        backend=backend,
        container=container,
        rel_path=rel_path,
        original=path,
    )


def extension_from_path(path: str) -> str:
    """Lowercased file extension of the last path segment ("" if none)."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()
