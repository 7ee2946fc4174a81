"""
Object key construction helpers.

Centralizes the logic for building object keys from a container prefix and a
relative path, and for stripping the prefix back off listed keys.
"""
from __future__ import annotations


def to_key(prefix: str, rel_path: str) -> str:
    """
    Build the object key for a relative path.

    Pure concatenation: the path resolver has already validated ``rel_path``
    and the container map has normalized ``prefix``.

    Examples:
        >>> to_key("t1/images/", "a/ab/Foo.png")
        't1/images/a/ab/Foo.png'

        >>> to_key("", "a.txt")
        'a.txt'
    """
    return f"{prefix}{rel_path}"


def from_key(prefix: str, key: str) -> str:
    """
    Strip ``prefix`` from a listed key.

    Raises:
        ValueError: If ``key`` does not start with ``prefix``

    Examples:
        >>> from_key("t1/images/", "t1/images/a/ab/Foo.png")
        'a/ab/Foo.png'
    """
    if not key.startswith(prefix):
        raise ValueError(f"Key {key!r} is outside prefix {prefix!r}")
    return key[len(prefix):]


def dir_prefix(prefix: str, rel_dir: str) -> str:
    """
    Key prefix under which a virtual directory's objects live.

    The container root is the bare prefix; any other directory gets a
    trailing '/'.

    Examples:
        >>> dir_prefix("t1/images/", "thumb")
        't1/images/thumb/'

        >>> dir_prefix("t1/images/", "")
        't1/images/'
    """
    if not rel_dir:
        return prefix
    return f"{prefix}{rel_dir}/"


__all__ = ["to_key", "from_key", "dir_prefix"]
