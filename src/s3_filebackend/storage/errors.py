"""
Storage error classes and remote fault translation.

Provides a clear taxonomy of errors that can occur while serving the virtual
file store from an S3-compatible object store, and the single place where
remote-store exceptions are turned into caller-facing faults.

Full remote detail (error code, HTTP status, message) is logged on this
module's logger only. Callers receive a Fault whose category comes from a
small fixed vocabulary and whose context is their own virtual path.
"""
from __future__ import annotations

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .status import FAULT_INTERNAL, FAULT_INVALID_PATH, FAULT_NOT_FOUND, Fault

logger = logging.getLogger(__name__)

# Error codes the remote store uses to confirm an object (or bucket) is absent.
# HEAD requests carry no body, so botocore reports the bare status as the code.
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class StorageBackendError(Exception):
    """
    Base class for all storage backend errors.

    These never cross the backend boundary; public operations convert them
    to faults on a Status.
    """
    category = FAULT_INTERNAL


class InvalidPathError(StorageBackendError, ValueError):
    """
    Virtual path rejected before any remote call.

    Raised when:
    - The path is not of the form scheme://backend/container/rel-path
    - A relative segment is a parent-directory traversal ('..')
    - The percent-encoded key exceeds the remote key-length ceiling
    """
    category = FAULT_INVALID_PATH


class ObjectNotFoundError(StorageBackendError):
    """
    Remote store confirmed the object does not exist.

    Raised when:
    - HTTP 404 / NoSuchKey on head, get, copy source or download
    """
    category = FAULT_NOT_FOUND


class RemoteStoreError(StorageBackendError):
    """
    Any other remote or transport failure.

    Raised when:
    - Permission, signature or credential errors (403, AccessDenied)
    - Network and endpoint errors
    - Malformed requests or unexpected statuses
    """
    category = FAULT_INTERNAL


def error_code(exc: BaseException) -> Optional[str]:
    """Remote error code of a botocore ClientError, if any."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code") or None
    return None


def http_status(exc: BaseException) -> Optional[int]:
    """HTTP status of a botocore ClientError, if any."""
    if isinstance(exc, ClientError):
        return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


def is_not_found(exc: BaseException) -> bool:
    """True when the remote store confirmed absence (as opposed to failing)."""
    if isinstance(exc, ObjectNotFoundError):
        return True
    if not isinstance(exc, ClientError):
        return False
    return error_code(exc) in NOT_FOUND_CODES or http_status(exc) == 404


def classify(exc: BaseException) -> StorageBackendError:
    """
    Map a raised exception onto the backend error taxonomy.

    Args:
        exc: Exception raised by the remote client or local I/O

    Returns:
        InvalidPathError, ObjectNotFoundError or RemoteStoreError
    """
    if isinstance(exc, StorageBackendError):
        return exc
    if is_not_found(exc):
        return ObjectNotFoundError(str(exc))
    return RemoteStoreError(str(exc))


def translate_error(operation: str, exc: BaseException, context: str) -> Fault:
    """
    Log a remote fault server-side and return the caller-facing Fault.

    Args:
        operation: Backend operation name (e.g. "create", "copy")
        exc: The exception raised at the call site
        context: Caller's virtual path, the only detail echoed back

    Returns:
        Fault with a generic category and the caller's path as context
    """
    err = classify(exc)

    if isinstance(err, ObjectNotFoundError):
        logger.debug(f"{operation}: object not found for {context}")
    elif isinstance(err, InvalidPathError):
        logger.info(f"{operation}: invalid path {context}: {err}")
    elif isinstance(exc, ClientError):
        logger.error(
            f"{operation} failed for {context}: code={error_code(exc)} "
            f"status={http_status(exc)} message={exc.response.get('Error', {}).get('Message')}"
        )
    elif isinstance(exc, BotoCoreError):
        logger.error(f"{operation} failed for {context}: transport error {type(exc).__name__}: {exc}")
    else:
        logger.error(f"{operation} failed for {context}: {type(exc).__name__}: {exc}")

    return Fault(err.category, context)


__all__ = [
    "StorageBackendError",
    "InvalidPathError",
    "ObjectNotFoundError",
    "RemoteStoreError",
    "NOT_FOUND_CODES",
    "error_code",
    "http_status",
    "is_not_found",
    "classify",
    "translate_error",
]
