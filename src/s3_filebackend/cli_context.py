"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and the
file backend, avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .settings import Settings, create_settings_from_env
from .storage.s3_backend import S3FileBackend


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Manages application-level dependencies (settings, backend) that are
    initialized once and shared across a CLI command execution.
    """
    settings: Settings
    _backend: Optional[S3FileBackend] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """
        Create CLI context from environment variables.

        Returns:
            CLIContext with settings loaded from environment
        """
        settings = create_settings_from_env()
        return cls(settings=settings)

    @property
    def backend(self) -> S3FileBackend:
        """
        Get or create the file backend (lazy initialization).

        Returns:
            S3FileBackend instance
        """
        if self._backend is None:
            self._backend = S3FileBackend(self.settings)
        return self._backend
