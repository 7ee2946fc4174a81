"""
S3 file backend.

Serves a hierarchical virtual file store (``scheme://backend/container/path``)
from S3-compatible object storage with per-container bucket/prefix mapping,
stat caching and safe error translation.
"""
from .settings import Settings, create_settings_from_env
from .storage.s3_backend import S3FileBackend
from .storage.stat_cache import InMemoryKeyValueStore
from .storage.status import Fault, Status, StreamResult

__version__ = "0.1.0"

__all__ = [
    "S3FileBackend",
    "Settings",
    "create_settings_from_env",
    "InMemoryKeyValueStore",
    "Fault",
    "Status",
    "StreamResult",
]
