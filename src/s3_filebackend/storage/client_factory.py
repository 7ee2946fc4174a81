"""
S3 client factory.

Builds the boto3 S3 client from settings. Supports Amazon S3, MinIO and
Aliyun OSS through a custom endpoint and an addressing style chosen by
configuration:

- MinIO and most self-hosted services: path style (http://host/bucket/key)
- Aliyun OSS: virtual-hosted style (http://bucket.host/key)
"""
from __future__ import annotations

import logging

import boto3
from botocore.config import Config

from ..settings import Settings
from .base import ObjectClient

__all__ = ["make_s3_client"]

logger = logging.getLogger(__name__)


def make_s3_client(settings: Settings) -> ObjectClient:
    """
    Create a boto3 S3 client for the configured endpoint.

    Retries and timeouts are configured here and nowhere else; the backend
    issues every request exactly once.

    Args:
        settings: Settings with endpoint, region, credentials and addressing style

    Returns:
        boto3 S3 client
    """
    config = Config(
        region_name=settings.region,
        signature_version="s3v4",
        s3={"addressing_style": settings.effective_addressing_style},
        retries={"max_attempts": settings.http_retry, "mode": "standard"},
        connect_timeout=settings.http_timeout_s,
        read_timeout=settings.http_timeout_s,
    )

    kwargs: dict = {
        "config": config,
        "aws_access_key_id": settings.access_key,
        "aws_secret_access_key": settings.secret_key,
    }
    if settings.endpoint_url:
        kwargs["endpoint_url"] = settings.endpoint_url

    # Log configuration (without secrets)
    logger.debug(
        f"Creating S3 client: endpoint={settings.endpoint_url or 'aws-default'} "
        f"region={settings.region} service={settings.service_type} "
        f"addressing={settings.effective_addressing_style}"
    )

    return boto3.client("s3", **kwargs)
