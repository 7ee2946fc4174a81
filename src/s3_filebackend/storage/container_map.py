"""
Logical container to physical bucket/prefix mapping.

This is where multi-tenant isolation happens: a logical container such as
``t1-public`` is mapped to a physical location such as ``wikifarm/t1/images``
(bucket ``wikifarm``, key prefix ``t1/images/``).
"""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

__all__ = ["ContainerMap", "parse_container_target"]

logger = logging.getLogger(__name__)


def parse_container_target(target: str) -> Tuple[str, str]:
    """
    Split a ``bucket[/prefix]`` mapping value.

    Everything before the first '/' is the bucket, everything after is the
    prefix. A non-empty prefix is normalized to end with exactly one '/'.

    Examples:
        >>> parse_container_target("bucket/t1/images")
        ('bucket', 't1/images/')

        >>> parse_container_target("bucket")
        ('bucket', '')

        >>> parse_container_target("bucket/t1//")
        ('bucket', 't1/')
    """
    bucket, sep, prefix = target.partition("/")
    if not bucket:
        raise ValueError(f"Container target has no bucket: {target!r}")
    if not sep:
        return bucket, ""
    prefix = prefix.rstrip("/")
    if prefix:
        prefix += "/"
    return bucket, prefix


class ContainerMap:
    """
    Read-only container mapping table.

    Loaded once at construction and never mutated afterwards, so lookups
    need no locking.
    """

    def __init__(self, container_paths: Optional[Mapping[str, str]] = None) -> None:
        resolved = {}
        for container, target in (container_paths or {}).items():
            resolved[container] = parse_container_target(target)
        self._paths = MappingProxyType(resolved)

    @property
    def containers(self) -> Mapping[str, Tuple[str, str]]:
        return self._paths

    def lookup(self, container: str) -> Tuple[str, str]:
        """
        Resolve a logical container to ``(bucket, prefix)``.

        Unmapped containers fall back to ``(container, "")``. The fallback keeps
        the backend usable without a mapping table; multi-tenant deployments
        are expected to map every container.
        """
        try:
            return self._paths[container]
        except KeyError:
            logger.info(f"Container '{container}' has no explicit mapping; using it as the bucket name")
            return container, ""

    def is_mapped(self, container: str) -> bool:
        return container in self._paths

    def __len__(self) -> int:
        return len(self._paths)
