"""
S3 file backend.

Serves a hierarchical virtual file store (``scheme://backend/container/path``)
from an S3-compatible object store (Amazon S3, MinIO, Aliyun OSS).

Every operation resolves its virtual path through the path resolver, the
container map and the key builder into (bucket, key), issues exactly one
remote request per step, and converts any remote exception into a Fault
before returning. No exception crosses this class's public methods.

Directories are virtual: they exist exactly when some key lives under them.
"""
from __future__ import annotations

import logging
import mimetypes
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import (
    Any, BinaryIO, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union,
)

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from ..path_safety import MAX_KEY_LENGTH, encoded_length
from ..settings import Settings
from .base import KeyValueStore, ObjectClient, StatRecord
from .client_factory import make_s3_client
from .container_map import ContainerMap
from .errors import InvalidPathError, error_code, is_not_found, translate_error
from .keys import dir_prefix, from_key, to_key
from .stat_cache import ABSENT, InMemoryKeyValueStore, StatCache
from .status import FAULT_INTERNAL, FAULT_NOT_FOUND, Status, StreamResult
from .uri import extension_from_path, parse_storage_path

__all__ = [
    "S3FileBackend",
    "ObjectLocation",
    "LocalCopy",
    "HEADER_PARAM_MAP",
    "FALLBACK_CONTENT_TYPE",
    "safe_content_type",
]

logger = logging.getLogger(__name__)

# Caller header overrides recognized on writes (matched case-insensitively)
HEADER_PARAM_MAP = {
    "content-disposition": "ContentDisposition",
    "cache-control": "CacheControl",
    "content-type": "ContentType",
}

# Custom object metadata field holding the host's content hash
CONTENT_HASH_METADATA = "sha1base36"

FALLBACK_CONTENT_TYPE = "application/octet-stream"

# Copy error code that refers to the source object
MISSING_SOURCE_CODE = "NoSuchKey"

# Types a browser would execute or render as a document
_SCRIPTABLE_CONTENT_TYPES = frozenset({
    "text/html",
    "application/xhtml+xml",
    "text/xml",
    "application/xml",
})

# Managed transfers (download_file) raise boto3 errors of their own
_REMOTE_ERRORS = (ClientError, BotoCoreError, Boto3Error)

STREAM_CHUNK_SIZE = 1024 * 1024


def safe_content_type(content_type: Optional[str]) -> str:
    """
    Content type to emit for a streamed object.

    HTML, XHTML and XML variants are forced to the generic binary type so a
    stored object can never be rendered as an active document.

    Examples:
        >>> safe_content_type("text/html; charset=utf-8")
        'application/octet-stream'

        >>> safe_content_type("image/png")
        'image/png'
    """
    if not content_type:
        return FALLBACK_CONTENT_TYPE
    base = content_type.split(";", 1)[0].strip().lower()
    if base in _SCRIPTABLE_CONTENT_TYPES or base.endswith("+xml"):
        return FALLBACK_CONTENT_TYPE
    return content_type


def map_header_overrides(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Translate recognized header overrides into put_object parameters."""
    params: Dict[str, str] = {}
    for name, value in (headers or {}).items():
        param = HEADER_PARAM_MAP.get(name.lower())
        if param:
            params[param] = value
    return params


@dataclass(frozen=True)
class ObjectLocation:
    """
    A virtual path resolved to its physical location.

    Attributes:
        path: Canonical virtual path (used as the stat cache key)
        container: Logical container name
        rel_path: Path below the container
        bucket: Physical bucket
        prefix: Key prefix for the container ("" or ending in '/')
        key: Object key (prefix + rel_path)
    """
    path: str
    container: str
    rel_path: str
    bucket: str
    prefix: str
    key: str


class LocalCopy:
    """
    A temporary local file holding a downloaded object.

    The file is removed by ``purge()`` or on leaving a ``with`` block.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def purge(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def __enter__(self) -> LocalCopy:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.purge()

    def __fspath__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        return f"LocalCopy({str(self.path)!r})"


class S3FileBackend:
    """
    File backend for S3-compatible object stores.

    Args:
        settings: Validated settings (credentials, endpoint, container map, TTLs)
        stat_store: Shared key-value store for the stat cache; a process-local
            store is used when omitted
        client_factory: Builds the remote client from settings; called at most
            once, on first use
    """

    directories_are_virtual = True

    def __init__(
        self,
        settings: Settings,
        *,
        stat_store: Optional[KeyValueStore] = None,
        client_factory: Optional[Callable[[Settings], ObjectClient]] = None,
    ) -> None:
        self._settings = settings
        self._containers = ContainerMap(settings.container_paths)
        self._stat_cache = StatCache(stat_store if stat_store is not None else InMemoryKeyValueStore())
        self._client_factory = client_factory or make_s3_client
        self._client: Optional[ObjectClient] = None
        self._client_lock = threading.Lock()

        if not len(self._containers):
            logger.info("No container mapping configured; every container maps to a bucket of the same name")

    @property
    def name(self) -> str:
        return self._settings.backend_name

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def containers(self) -> ContainerMap:
        return self._containers

    @property
    def stat_cache(self) -> StatCache:
        return self._stat_cache

    def get_client(self) -> ObjectClient:
        """
        Get or create the remote client (lazy initialization).

        Concurrent first use builds at most one client.
        """
        client = self._client
        if client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._client_factory(self._settings)
                client = self._client
        return client

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, path: str, *, allow_empty: bool = False) -> ObjectLocation:
        """
        Resolve a virtual path to bucket and key.

        Raises:
            InvalidPathError: If the path is malformed, unsafe, too long or
                addressed to another backend
        """
        parsed = parse_storage_path(path, allow_empty=allow_empty)
        if parsed.backend != self.name:
            raise InvalidPathError(f"Path {path} is not served by backend {self.name}")

        bucket, prefix = self._containers.lookup(parsed.container)
        key = to_key(prefix, parsed.rel_path)
        if encoded_length(key) > MAX_KEY_LENGTH:
            raise InvalidPathError(f"object key too long: {encoded_length(key)} encoded bytes")

        canonical = f"{parsed.scheme}://{parsed.backend}/{parsed.container}"
        if parsed.rel_path:
            canonical = f"{canonical}/{parsed.rel_path}"

        return ObjectLocation(
            path=canonical,
            container=parsed.container,
            rel_path=parsed.rel_path,
            bucket=bucket,
            prefix=prefix,
            key=key,
        )

    def _resolve_or_fault(self, operation: str, path: str) -> Tuple[Optional[ObjectLocation], Optional[Status]]:
        try:
            return self.resolve(path), None
        except InvalidPathError as e:
            return None, Status(faults=[translate_error(operation, e, path)])

    def is_path_usable(self, path: str) -> bool:
        """Any resolvable path is usable; there are no directories to pre-create."""
        try:
            self.resolve(path, allow_empty=True)
        except InvalidPathError:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, dst: str, content: Union[bytes, str], *, headers: Optional[Mapping[str, str]] = None) -> Status:
        """Write an in-memory payload to ``dst``."""
        return self._create_or_store("create", dst, content=content, headers=headers)

    def store(self, dst: str, src_file: Union[str, Path], *, headers: Optional[Mapping[str, str]] = None) -> Status:
        """Upload the local file ``src_file`` to ``dst``."""
        return self._create_or_store("store", dst, source_file=src_file, headers=headers)

    def _create_or_store(
        self,
        operation: str,
        dst: str,
        *,
        content: Union[bytes, str, None] = None,
        source_file: Union[str, Path, None] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Status:
        """
        Shared write path for create and store.

        Exactly one of ``content`` and ``source_file`` must be given.
        """
        loc, fault = self._resolve_or_fault(operation, dst)
        if fault is not None:
            return fault

        if (content is None) == (source_file is None):
            logger.error(f"{operation}: exactly one of content or source file is required for {dst}")
            return Status.fatal(FAULT_INTERNAL, "exactly one of content or source file is required")

        params: Dict[str, Any] = {"Bucket": loc.bucket, "Key": loc.key}
        if source_file is not None:
            guessed, _ = mimetypes.guess_type(str(source_file))
            if guessed:
                params["ContentType"] = guessed
        params.update(map_header_overrides(headers))

        try:
            client = self.get_client()
            if source_file is not None:
                with open(source_file, "rb") as fh:
                    client.put_object(Body=fh, **params)
            else:
                body = content.encode("utf-8") if isinstance(content, str) else content
                client.put_object(Body=body, **params)
        except (*_REMOTE_ERRORS, OSError) as e:
            return Status(faults=[translate_error(operation, e, dst)])

        self._stat_cache.invalidate(loc.path)
        logger.debug(f"{operation}: wrote {dst}")
        return Status.good()

    def copy(self, src: str, dst: str, *, ignore_missing_source: bool = False) -> Status:
        """
        Server-side copy of ``src`` to ``dst``.

        A missing source fails the copy unless ``ignore_missing_source``.
        """
        status, _ = self._copy("copy", src, dst, ignore_missing_source)
        return status

    def _copy(self, operation: str, src: str, dst: str, ignore_missing_source: bool) -> Tuple[Status, bool]:
        """Returns (status, source_was_missing)."""
        src_loc, fault = self._resolve_or_fault(operation, src)
        if fault is not None:
            return fault, False
        dst_loc, fault = self._resolve_or_fault(operation, dst)
        if fault is not None:
            return fault, False

        try:
            self.get_client().copy_object(
                Bucket=dst_loc.bucket,
                Key=dst_loc.key,
                CopySource={"Bucket": src_loc.bucket, "Key": src_loc.key},
            )
        except _REMOTE_ERRORS as e:
            # Only NoSuchKey names the source; other 404s (NoSuchBucket) may be the destination
            if error_code(e) == MISSING_SOURCE_CODE:
                if ignore_missing_source:
                    logger.debug(f"{operation}: source {src} missing, ignored")
                    return Status.good(), True
                logger.debug(f"{operation}: source {src} not found")
                return Status.fatal(FAULT_NOT_FOUND, src), True
            if is_not_found(e):
                logger.error(f"{operation}: copy of {src} to {dst} failed with {error_code(e)}")
                return Status.fatal(FAULT_INTERNAL, dst), False
            return Status(faults=[translate_error(operation, e, src)]), False

        self._stat_cache.invalidate(dst_loc.path)
        logger.debug(f"{operation}: copied {src} to {dst}")
        return Status.good(), False

    def delete(self, src: str) -> Status:
        """Delete ``src``; whatever the remote store reports is propagated."""
        return self._delete("delete", src)

    def _delete(self, operation: str, src: str) -> Status:
        loc, fault = self._resolve_or_fault(operation, src)
        if fault is not None:
            return fault

        try:
            self.get_client().delete_object(Bucket=loc.bucket, Key=loc.key)
        except _REMOTE_ERRORS as e:
            return Status(faults=[translate_error(operation, e, src)])

        self._stat_cache.invalidate(loc.path)
        logger.debug(f"{operation}: deleted {src}")
        return Status.good()

    def move(self, src: str, dst: str, *, ignore_missing_source: bool = False) -> Status:
        """
        Move ``src`` to ``dst`` as copy followed by delete of the source.

        If the copy fails nothing is deleted. If the copy succeeds and the
        delete fails, the returned status carries the delete fault and the
        destination object remains (the source is duplicated, not lost).
        """
        status, source_missing = self._copy("move", src, dst, ignore_missing_source)
        if not status.ok or source_missing:
            return status

        delete_status = self._delete("move", src)
        if not delete_status.ok:
            logger.warning(f"move: copied {src} to {dst} but could not delete the source")
        return status.merge(delete_status)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_file_stat(self, src: str) -> Optional[StatRecord]:
        """
        Metadata for ``src``, or None when it does not exist.

        Transport failures also return None but are never cached, so a
        transient error cannot hide a real file.
        """
        try:
            loc = self.resolve(src)
        except InvalidPathError as e:
            translate_error("stat", e, src)
            return None

        cached = self._stat_cache.get(loc.path)
        if cached is ABSENT:
            return None
        if cached is not None:
            return cached

        try:
            response = self.get_client().head_object(Bucket=loc.bucket, Key=loc.key)
        except _REMOTE_ERRORS as e:
            if is_not_found(e):
                self._stat_cache.put_absent(loc.path, self._settings.missing_ttl_s)
            translate_error("stat", e, src)
            return None

        record = _stat_from_head(response)
        self._stat_cache.put(loc.path, record, self._settings.stat_ttl_s)
        return record

    def file_exists(self, src: str) -> bool:
        return self.get_file_stat(src) is not None

    def stream_file(
        self,
        src: str,
        out: BinaryIO,
        *,
        headers: Optional[Mapping[str, str]] = None,
        on_headers: Optional[Callable[[Dict[str, str]], None]] = None,
    ) -> StreamResult:
        """
        Write the content of ``src`` to ``out``.

        The emitted Content-Type passes through ``safe_content_type`` and
        ``X-Content-Type-Options: nosniff`` is always set. Extra ``headers``
        are added to the response but cannot replace either of these.
        ``on_headers`` receives the final headers before any body bytes are
        written.
        """
        loc, fault = self._resolve_or_fault("stream", src)
        if fault is not None:
            return StreamResult(status=fault)

        try:
            response = self.get_client().get_object(Bucket=loc.bucket, Key=loc.key)
        except _REMOTE_ERRORS as e:
            return StreamResult(status=Status(faults=[translate_error("stream", e, src)]))

        emitted = {
            name: value
            for name, value in (headers or {}).items()
            if name.lower() not in ("content-type", "x-content-type-options", "content-length")
        }
        emitted["Content-Type"] = safe_content_type(response.get("ContentType"))
        emitted["X-Content-Type-Options"] = "nosniff"
        if response.get("ContentLength") is not None:
            emitted["Content-Length"] = str(response["ContentLength"])

        if on_headers is not None:
            on_headers(emitted)

        body = response["Body"]
        try:
            for chunk in iter(lambda: body.read(STREAM_CHUNK_SIZE), b""):
                out.write(chunk)
        except (*_REMOTE_ERRORS, OSError) as e:
            return StreamResult(status=Status(faults=[translate_error("stream", e, src)]), headers=emitted)
        finally:
            body.close()

        return StreamResult(status=Status.good(), headers=emitted)

    def get_local_copy(self, src: str) -> Optional[LocalCopy]:
        return self.get_local_copy_multi([src])[src]

    def get_local_copy_multi(self, srcs: Iterable[str]) -> Dict[str, Optional[LocalCopy]]:
        """
        Download each path into its own new temporary file.

        Items are independent: a failure yields None for that path only and
        the rest of the batch still runs.
        """
        results: Dict[str, Optional[LocalCopy]] = {}
        for src in srcs:
            results[src] = self._download_to_temp(src)
        return results

    def _download_to_temp(self, src: str) -> Optional[LocalCopy]:
        try:
            loc = self.resolve(src)
        except InvalidPathError as e:
            translate_error("local-copy", e, src)
            return None

        ext = extension_from_path(loc.rel_path)
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix="s3_",
                suffix=f".{ext}" if ext else "",
                dir=self._settings.temp_dir,
            )
            os.close(fd)
        except OSError as e:
            translate_error("local-copy", e, src)
            return None

        local = LocalCopy(tmp_name)
        try:
            self.get_client().download_file(Bucket=loc.bucket, Key=loc.key, Filename=tmp_name)
        except (*_REMOTE_ERRORS, OSError) as e:
            translate_error("local-copy", e, src)
            local.purge()
            return None
        return local

    # ------------------------------------------------------------------
    # Directories and listings
    # ------------------------------------------------------------------

    def _resolve_dir(self, operation: str, dir_path: str) -> Optional[Tuple[ObjectLocation, str]]:
        try:
            loc = self.resolve(dir_path, allow_empty=True)
        except InvalidPathError as e:
            translate_error(operation, e, dir_path)
            return None
        return loc, dir_prefix(loc.prefix, loc.rel_path)

    def directory_exists(self, dir_path: str) -> bool:
        """A virtual directory exists when at least one key lives under it."""
        resolved = self._resolve_dir("directory-exists", dir_path)
        if resolved is None:
            return False
        loc, prefix = resolved

        try:
            response = self.get_client().list_objects_v2(Bucket=loc.bucket, Prefix=prefix, MaxKeys=1)
        except _REMOTE_ERRORS as e:
            translate_error("directory-exists", e, dir_path)
            return False

        count = response.get("KeyCount")
        if count is None:
            count = len(response.get("Contents", [])) + len(response.get("CommonPrefixes", []))
        return count > 0

    def _list_pages(self, bucket: str, prefix: str, delimiter: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """Yield every page of a listing, following continuation tokens."""
        kwargs: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if delimiter:
            kwargs["Delimiter"] = delimiter
        client = self.get_client()
        while True:
            page = client.list_objects_v2(**kwargs)
            yield page
            token = page.get("NextContinuationToken")
            if not page.get("IsTruncated") or not token:
                return
            kwargs["ContinuationToken"] = token

    def get_file_list(self, dir_path: str, *, top_only: bool = False) -> Optional[List[str]]:
        """
        Files under a virtual directory, relative to it.

        Directory marker objects (keys ending in '/', including the key equal
        to the directory prefix itself) are never reported as files.

        Returns:
            List of relative file paths, or None if the listing failed
        """
        resolved = self._resolve_dir("file-list", dir_path)
        if resolved is None:
            return None
        loc, prefix = resolved

        files: List[str] = []
        try:
            for page in self._list_pages(loc.bucket, prefix, "/" if top_only else None):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key == prefix or key.endswith("/"):
                        continue
                    files.append(from_key(prefix, key))
        except _REMOTE_ERRORS as e:
            translate_error("file-list", e, dir_path)
            return None
        return files

    def get_directory_list(self, dir_path: str, *, top_only: bool = False) -> Optional[List[str]]:
        """
        Subdirectories of a virtual directory, relative to it.

        With ``top_only`` the remote store groups deeper keys into common
        prefixes; otherwise every intermediate directory found below the
        prefix is reported.

        Returns:
            List of relative directory names without trailing '/', or None if
            the listing failed
        """
        resolved = self._resolve_dir("directory-list", dir_path)
        if resolved is None:
            return None
        loc, prefix = resolved

        dirs: Dict[str, None] = {}
        try:
            if top_only:
                for page in self._list_pages(loc.bucket, prefix, "/"):
                    for common in page.get("CommonPrefixes", []):
                        name = from_key(prefix, common["Prefix"]).rstrip("/")
                        if name:
                            dirs[name] = None
            else:
                for page in self._list_pages(loc.bucket, prefix):
                    for obj in page.get("Contents", []):
                        rel = from_key(prefix, obj["Key"])
                        parts = rel.split("/")[:-1]
                        for depth in range(1, len(parts) + 1):
                            dirs["/".join(parts[:depth])] = None
        except _REMOTE_ERRORS as e:
            translate_error("directory-list", e, dir_path)
            return None
        return list(dirs)


def _stat_from_head(response: Mapping[str, Any]) -> StatRecord:
    metadata = {k.lower(): v for k, v in (response.get("Metadata") or {}).items()}
    return StatRecord(
        size=int(response.get("ContentLength") or 0),
        mtime=_epoch_seconds(response.get("LastModified")),
        content_hash=metadata.get(CONTENT_HASH_METADATA) or None,
    )


def _epoch_seconds(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    if isinstance(value, (int, float)):
        return int(value)
    return 0
