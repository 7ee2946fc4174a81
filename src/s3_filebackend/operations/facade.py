"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the S3 file backend,
turning backend statuses and sentinels into exceptions the CLI maps to exit
codes, and running the end-to-end verification sequence.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

from ..settings import Settings
from ..storage.base import StatRecord
from ..storage.s3_backend import S3FileBackend
from ..storage.status import FAULT_INVALID_PATH, FAULT_NOT_FOUND, Status, StreamResult


class PathNotFoundError(Exception):
    """A virtual path does not exist in the backend."""


class OperationFailed(Exception):
    """A backend operation returned a failing status."""

    def __init__(self, message: str, status: Optional[Status] = None):
        super().__init__(message)
        self.status = status


class VerificationError(Exception):
    """A verification step failed."""

    def __init__(self, message: str, report: Optional[VerifyReport] = None):
        super().__init__(message)
        self.report = report


@dataclass
class VerifyStep:
    """Outcome of one verification step."""
    name: str
    ok: bool
    detail: str = ""
    warning: bool = False


@dataclass
class VerifyReport:
    """All steps run against a single test path."""
    path: str
    steps: List[VerifyStep] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def warnings(self) -> List[VerifyStep]:
        return [step for step in self.steps if step.warning]


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes policy decisions for CLI commands.
    """
    scheme: str = "mwstore"      # Scheme used when building test paths


def _raise_for_status(status: Status, action: str) -> None:
    if status.ok:
        return
    if status.has(FAULT_INVALID_PATH):
        raise ValueError(f"{action} failed: {status}")
    if status.has(FAULT_NOT_FOUND):
        raise PathNotFoundError(f"{action} failed: {status}")
    raise OperationFailed(f"{action} failed: {status}", status)


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. The backend is injected, so commands can be
    tested against a fake remote client.
    """

    def __init__(self, config: OpsConfig, backend: Optional[S3FileBackend] = None,
                 settings: Optional[Settings] = None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            backend: File backend (if None, built from settings)
            settings: Optional settings (if None, loaded from environment)
        """
        self.cfg = config

        if backend is None:
            if settings is None:
                from ..settings import create_settings_from_env
                settings = create_settings_from_env()
            backend = S3FileBackend(settings)
        self.backend = backend

    def storage_path(self, container: str, rel_path: str = "") -> str:
        """Build a virtual path on this backend."""
        base = f"{self.cfg.scheme}://{self.backend.name}/{container}"
        return f"{base}/{rel_path}" if rel_path else base

    def stat(self, path: str) -> StatRecord:
        record = self.backend.get_file_stat(path)
        if record is None:
            raise PathNotFoundError(f"No such file: {path}")
        return record

    def list(self, path: str, *, top_only: bool = False, directories: bool = False) -> List[str]:
        if directories:
            names = self.backend.get_directory_list(path, top_only=top_only)
        else:
            names = self.backend.get_file_list(path, top_only=top_only)
        if names is None:
            raise OperationFailed(f"Listing failed: {path}")
        return names

    def cat(self, path: str, out: BinaryIO) -> StreamResult:
        result = self.backend.stream_file(path, out)
        _raise_for_status(result.status, f"Reading {path}")
        return result

    def put(self, local_file: Path, dst: str, *, content_type: Optional[str] = None) -> None:
        if not local_file.is_file():
            raise ValueError(f"Local file does not exist: {local_file}")
        headers = {"Content-Type": content_type} if content_type else None
        _raise_for_status(self.backend.store(dst, local_file, headers=headers), f"Storing {dst}")

    def rm(self, path: str) -> None:
        _raise_for_status(self.backend.delete(path), f"Deleting {path}")

    def verify(self, container: str, *, on_step: Optional[Callable[[VerifyStep], None]] = None,
               timestamp: Optional[int] = None) -> VerifyReport:
        """
        Exercise create -> stat -> list -> delete against the live backend.

        A test file that is missing from the listing is reported as a warning
        (listings can lag behind writes); every other failing step raises.

        Args:
            container: Logical container to write the test file into
            on_step: Called after each step (used for progress output)
            timestamp: Override for the test file name and content

        Returns:
            Report of all steps

        Raises:
            VerificationError: On the first failing step
        """
        ts = timestamp if timestamp is not None else int(time.time())
        name = f"verify_test_{ts}.txt"
        path = self.storage_path(container, name)
        content = f"Hello from s3-filebackend! Verification timestamp: {ts}"
        report = VerifyReport(path=path)

        def record(step: VerifyStep) -> None:
            report.steps.append(step)
            if on_step is not None:
                on_step(step)
            if not step.ok:
                raise VerificationError(f"{step.name} failed: {step.detail}", report)

        status = self.backend.create(path, content)
        record(VerifyStep("create", status.ok, str(status)))

        exists = self.backend.file_exists(path)
        record(VerifyStep("exists", exists, "file exists" if exists else "file does not exist after create"))

        stat = self.backend.get_file_stat(path)
        if stat is None:
            record(VerifyStep("stat", False, "no metadata after create"))
        expected_size = len(content.encode("utf-8"))
        record(VerifyStep(
            "stat",
            stat.size == expected_size,
            f"size {stat.size}" if stat.size == expected_size else f"size {stat.size}, expected {expected_size}",
        ))

        listing = self.backend.get_file_list(self.storage_path(container), top_only=True)
        if listing is None:
            record(VerifyStep("list", False, "listing failed"))
        elif name in listing:
            record(VerifyStep("list", True, f"{len(listing)} entries"))
        else:
            record(VerifyStep("list", True, "test file not in listing (pagination or listing lag)", warning=True))

        status = self.backend.delete(path)
        record(VerifyStep("delete", status.ok, str(status)))

        if self.backend.file_exists(path):
            record(VerifyStep("absent", False, "file still exists after delete"))
        record(VerifyStep("absent", True, "file gone after delete"))

        return report
