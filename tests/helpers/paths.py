"""
Virtual path helpers shared by tests.
"""
from __future__ import annotations

BACKEND = "backend"
SCHEME = "store"

CONTAINER_PATHS = {
    "t1-public": "bucket/t1/images",
    "t1-thumb": "bucket/t1/thumbs/",
    "t2-public": "other-bucket",
}


def vpath(container: str, rel_path: str = "") -> str:
    """Build a virtual path on the test backend."""
    base = f"{SCHEME}://{BACKEND}/{container}"
    return f"{base}/{rel_path}" if rel_path else base
