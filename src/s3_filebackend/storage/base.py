"""
Storage interfaces for the S3 file backend.

These protocols define the boundary between the backend and its collaborators
(the remote object client and the shared metadata cache), enabling clean
dependency injection and testing with fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class StatRecord:
    """
    File metadata produced from a remote HEAD response.

    Invariants:
    - size: exact byte length (>= 0)
    - mtime: last-modified time as integer epoch seconds
    - content_hash: only set when the object carries the ``sha1base36``
      custom metadata field; the remote ETag is never used in its place
    """
    size: int
    mtime: int
    content_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"size": self.size, "mtime": self.mtime, "content_hash": self.content_hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StatRecord:
        return cls(
            size=int(data["size"]),
            mtime=int(data["mtime"]),
            content_hash=data.get("content_hash"),
        )


__all__ = ["StatRecord", "KeyValueStore", "ObjectClient"]


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Shared key-value store with per-entry TTL.

    Each call must be individually atomic; no cross-call transactions are
    required. Values are JSON-compatible (dicts and strings).
    """

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or expired."""
        ...

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` for ``ttl`` seconds."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...


@runtime_checkable
class ObjectClient(Protocol):
    """
    The subset of the boto3 S3 client used by the backend.

    Methods take the same keyword arguments and return the same response
    dictionaries as boto3; failures raise ``botocore`` exceptions.
    """

    def put_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    def get_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    def head_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    def delete_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    def copy_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    def list_objects_v2(self, **kwargs: Any) -> Dict[str, Any]: ...

    def download_file(self, Bucket: str, Key: str, Filename: str, **kwargs: Any) -> None: ...
