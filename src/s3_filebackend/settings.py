"""
Settings and configuration for the S3 file backend.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables (and an optional YAML container map)
at backend construction time.
"""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

__all__ = [
    "Settings",
    "create_settings_from_env",
    "load_container_paths",
    "SERVICE_TYPES",
    "ADDRESSING_STYLES",
]

SERVICE_TYPES = ("minio", "aliyun", "oss", "s3")
ADDRESSING_STYLES = ("path", "virtual", "auto")

# Service variants that host buckets as subdomains and process images server-side
_VIRTUAL_HOST_SERVICES = ("aliyun", "oss")

DEFAULT_STAT_TTL_S = 86400 * 7
DEFAULT_MISSING_TTL_S = 60


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the S3 file backend.

    Remote store:
        endpoint_url: Custom S3-compatible endpoint (MinIO, Aliyun OSS); None for AWS
        region: Signing region
        access_key: Access key id (required)
        secret_key: Secret access key (required)
        service_type: "minio" | "aliyun" | "oss" | "s3"
        addressing_style: Explicit "path" | "virtual" | "auto"; derived from
            service_type when None
        http_timeout_s: Connect/read timeout handed to the client
        http_retry: Max attempts for the client's standard retry mode

    Layout and caching:
        backend_name: Backend segment expected in virtual paths
        container_paths: Logical container -> "bucket[/prefix]"
        stat_ttl_s: TTL for cached stat records
        missing_ttl_s: TTL for cached "confirmed absent" markers
        temp_dir: Directory for local copies (system default when None)
        image_processing: Rewrite thumbnails to server-side processing URLs;
            derived from service_type when None
    """
    access_key: str
    secret_key: str
    endpoint_url: Optional[str] = None
    region: str = "us-east-1"
    service_type: str = "minio"
    addressing_style: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 3

    backend_name: str = "s3-backend"
    container_paths: Mapping[str, str] = field(default_factory=dict)
    stat_ttl_s: int = DEFAULT_STAT_TTL_S
    missing_ttl_s: int = DEFAULT_MISSING_TTL_S
    temp_dir: Optional[str] = None
    image_processing: Optional[bool] = None

    def __post_init__(self):
        """Validate settings on construction."""
        # Credentials must be complete
        if not self.access_key and not self.secret_key:
            raise ValueError("access_key and secret_key are required")
        if not self.access_key:
            raise ValueError("secret_key specified but access_key is missing")
        if not self.secret_key:
            raise ValueError("access_key specified but secret_key is missing")

        if self.endpoint_url is not None:
            url_pattern = r"^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?(?:/.*)?$"
            if not re.match(url_pattern, self.endpoint_url):
                raise ValueError(f"Invalid endpoint_url format: {self.endpoint_url}")

        if self.service_type not in SERVICE_TYPES:
            raise ValueError(
                f"Unknown service_type: {self.service_type}. "
                f"Supported values: {', '.join(SERVICE_TYPES)}"
            )

        if self.addressing_style is not None and self.addressing_style not in ADDRESSING_STYLES:
            raise ValueError(
                f"Unknown addressing_style: {self.addressing_style}. "
                f"Supported values: {', '.join(ADDRESSING_STYLES)}"
            )

        if not self.backend_name:
            raise ValueError("backend_name is required")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if self.stat_ttl_s <= 0:
            raise ValueError(f"stat_ttl_s must be positive, got {self.stat_ttl_s}")

        if self.missing_ttl_s <= 0:
            raise ValueError(f"missing_ttl_s must be positive, got {self.missing_ttl_s}")

        for container, target in self.container_paths.items():
            if not container or not isinstance(container, str):
                raise ValueError(f"Invalid container name in container_paths: {container!r}")
            if not target or not isinstance(target, str) or target.startswith("/"):
                raise ValueError(f"Invalid container path for {container}: {target!r}")

        # Freeze the mapping; it is never mutated after construction
        object.__setattr__(self, "container_paths", MappingProxyType(dict(self.container_paths)))

    @property
    def effective_addressing_style(self) -> str:
        """Addressing style handed to the client (explicit or derived from service type)."""
        if self.addressing_style:
            return self.addressing_style
        if self.service_type in _VIRTUAL_HOST_SERVICES:
            return "virtual"
        return "path"

    @property
    def effective_image_processing(self) -> bool:
        """Whether the service variant supports server-side image processing."""
        if self.image_processing is not None:
            return self.image_processing
        return self.service_type in _VIRTUAL_HOST_SERVICES


def load_container_paths(path: str | Path) -> dict[str, str]:
    """
    Load a container mapping table from a YAML file.

    The file holds a flat mapping of logical container names to
    ``bucket[/prefix]`` strings, optionally nested under a
    ``container_paths`` key::

        container_paths:
          t1-public: wikifarm/t1/images
          t1-thumb: wikifarm/t1/thumbs

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a string-to-string mapping
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if isinstance(data, dict) and "container_paths" in data:
        data = data["container_paths"] or {}

    return _validate_mapping(data, source=str(path))


def _validate_mapping(data: object, *, source: str) -> dict[str, str]:
    if not isinstance(data, dict):
        raise ValueError(f"Container mapping in {source} must be a mapping")
    mapping = {}
    for key, value in data.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValueError(f"Container mapping in {source} must map strings to strings")
        mapping[key] = value
    return mapping


# Settings loading functions (no caching)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Remote store:
        - S3FB_ACCESS_KEY (required)
        - S3FB_SECRET_KEY (required)
        - S3FB_ENDPOINT (optional, for MinIO/OSS)
        - S3FB_REGION (default: us-east-1)
        - S3FB_SERVICE_TYPE (default: minio)
        - S3FB_ADDRESSING_STYLE (optional: path, virtual, auto)
        - S3FB_HTTP_TIMEOUT (default: 30.0)
        - S3FB_HTTP_RETRY (default: 3)

        Layout and caching:
        - S3FB_BACKEND_NAME (default: s3-backend)
        - S3FB_CONTAINER_PATHS (optional, inline JSON object)
        - S3FB_CONTAINER_PATHS_FILE (optional, YAML file; merged over inline JSON)
        - S3FB_STAT_TTL (default: 604800)
        - S3FB_MISSING_TTL (default: 60)
        - S3FB_TEMP_DIR (optional)
        - S3FB_IMAGE_PROCESSING (optional boolean)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    return _load_settings_impl()


def _load_settings_impl() -> Settings:
    """Internal implementation of settings loading."""
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    access_key = os.getenv("S3FB_ACCESS_KEY")
    secret_key = os.getenv("S3FB_SECRET_KEY")

    if not access_key:
        raise ValueError("S3FB_ACCESS_KEY environment variable is required")
    if not secret_key:
        raise ValueError("S3FB_SECRET_KEY environment variable is required")

    container_paths: dict[str, str] = {}
    inline = os.getenv("S3FB_CONTAINER_PATHS")
    if inline:
        try:
            parsed = json.loads(inline)
        except json.JSONDecodeError as e:
            raise ValueError(f"S3FB_CONTAINER_PATHS is not valid JSON: {e}") from e
        container_paths.update(_validate_mapping(parsed, source="S3FB_CONTAINER_PATHS"))

    mapping_file = os.getenv("S3FB_CONTAINER_PATHS_FILE")
    if mapping_file:
        container_paths.update(load_container_paths(mapping_file))

    image_processing_env = os.getenv("S3FB_IMAGE_PROCESSING")
    image_processing = str_to_bool(image_processing_env) if image_processing_env else None

    return Settings(
        access_key=access_key,
        secret_key=secret_key,
        endpoint_url=os.getenv("S3FB_ENDPOINT") or None,
        region=os.getenv("S3FB_REGION", "us-east-1"),
        service_type=os.getenv("S3FB_SERVICE_TYPE", "minio").lower(),
        addressing_style=os.getenv("S3FB_ADDRESSING_STYLE") or None,
        http_timeout_s=get_float("S3FB_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("S3FB_HTTP_RETRY", 3),
        backend_name=os.getenv("S3FB_BACKEND_NAME", "s3-backend"),
        container_paths=container_paths,
        stat_ttl_s=get_int("S3FB_STAT_TTL", DEFAULT_STAT_TTL_S),
        missing_ttl_s=get_int("S3FB_MISSING_TTL", DEFAULT_MISSING_TTL_S),
        temp_dir=os.getenv("S3FB_TEMP_DIR") or None,
        image_processing=image_processing,
    )
