"""
Path safety utilities for the S3 file backend.

This module provides shared validation for relative storage paths before they
are turned into object keys, preventing directory traversal and keys the
remote store would refuse.
"""
from __future__ import annotations

from urllib.parse import quote_plus

from .storage.errors import InvalidPathError

__all__ = ["MAX_KEY_LENGTH", "safe_relpath", "encoded_length"]

# Remote store key-length ceiling, measured on the percent-encoded form
MAX_KEY_LENGTH = 1024


def encoded_length(path: str) -> int:
    """Byte length of ``path`` once percent-encoded (form encoding, like ``urlencode``)."""
    return len(quote_plus(path))


def safe_relpath(path: str, *, allow_empty: bool = False) -> str:
    """
    Validate a relative storage path before any object key is built from it.

    This function enforces the following safety rules:
    - No empty path unless ``allow_empty`` (directory-level operations)
    - No absolute paths (starting with '/')
    - No backslashes
    - No parent directory segments ('..' as a whole segment)
    - No empty or '.' segments
    - Percent-encoded length must not exceed MAX_KEY_LENGTH

    A single trailing '/' is tolerated and dropped.

    Args:
        path: Relative path below a container
        allow_empty: Accept "" (the container root)

    Returns:
        The validated relative path

    Raises:
        InvalidPathError: If path violates safety rules

    Examples:
        >>> safe_relpath("thumb/a/ab/Foo.jpg")
        'thumb/a/ab/Foo.jpg'

        >>> safe_relpath("a/../../etc/passwd")
        InvalidPathError: unsafe path: a/../../etc/passwd

        >>> safe_relpath("", allow_empty=True)
        ''
    """
    if path.endswith("/") and path != "/":
        path = path[:-1]

    if not path:
        if allow_empty:
            return ""
        raise InvalidPathError(f"unsafe path: {path}")

    if "\\" in path or path.startswith("/"):
        raise InvalidPathError(f"unsafe path: {path}")

    parts = path.split("/")
    if ".." in parts:
        raise InvalidPathError(f"unsafe path: {path}")
    if any(part in ("", ".") for part in parts):
        raise InvalidPathError(f"unsafe path: {path}")

    if encoded_length(path) > MAX_KEY_LENGTH:
        raise InvalidPathError(f"path too long: {encoded_length(path)} encoded bytes")

    return path
