"""
Thumbnail interception for object-store backed images.

Wraps any image transform handler. When the image lives on an
S3FileBackend and the service variant processes images server-side (Aliyun
OSS), a thumbnail request is answered with a URL carrying the processing
directive instead of downloading the original and resizing it locally.
Everything else is delegated to the wrapped handler unchanged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

from ..storage.s3_backend import S3FileBackend

__all__ = [
    "ImageFile",
    "TransformHandler",
    "ThumbnailImage",
    "TransformError",
    "ThumbnailInterceptor",
    "processing_url",
]

logger = logging.getLogger(__name__)

PROCESS_PARAM = "x-oss-process"


@runtime_checkable
class ImageFile(Protocol):
    """The parts of a stored image the interceptor looks at."""

    url: str
    width: int
    backend: Any

    def must_render(self) -> bool: ...


@dataclass
class ThumbnailImage:
    """
    A successful transform result.

    ``path`` is None for thumbnails that exist only as a remote URL and are
    never written to local disk.
    """
    image: Any
    url: str
    path: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TransformError:
    """A failed transform result."""
    message_key: str
    width: int
    height: int
    detail: str = ""


TransformResult = Union[ThumbnailImage, TransformError]


@runtime_checkable
class TransformHandler(Protocol):
    """Capability interface for format-specific image handlers."""

    def normalise_params(self, image: Any, params: Dict[str, Any]) -> bool:
        """Fill in derived parameters in place; False if they are unusable."""
        ...

    def transform(
        self, image: Any, dst_path: str, dst_url: str, params: Dict[str, Any], flags: int = 0
    ) -> TransformResult: ...

    def scripted_transform(self, image: Any, script: str, params: Dict[str, Any]) -> Optional[TransformResult]: ...


def processing_url(original_url: str, width: int) -> str:
    """
    Append a server-side resize directive to an object URL.

    Examples:
        >>> processing_url("https://cdn.example.org/t1/a/ab/Foo.jpg", 120)
        'https://cdn.example.org/t1/a/ab/Foo.jpg?x-oss-process=image/resize,m_lfit,w_120'

        >>> processing_url("https://cdn.example.org/Foo.jpg?v=2", 120)
        'https://cdn.example.org/Foo.jpg?v=2&x-oss-process=image/resize,m_lfit,w_120'
    """
    separator = "&" if "?" in original_url else "?"
    return f"{original_url}{separator}{PROCESS_PARAM}=image/resize,m_lfit,w_{width}"


class ThumbnailInterceptor:
    """
    Decorates a TransformHandler with server-side thumbnail rewriting.

    Args:
        base: Handler used whenever interception does not apply
        image_processing: Whether the deployment's service variant supports
            server-side image processing (from configuration, not the process
            environment)
    """

    def __init__(self, base: TransformHandler, *, image_processing: bool) -> None:
        self._base = base
        self._image_processing = image_processing

    @property
    def base(self) -> TransformHandler:
        return self._base

    def normalise_params(self, image: Any, params: Dict[str, Any]) -> bool:
        return self._base.normalise_params(image, params)

    def applies_to(self, image: Any) -> bool:
        """True when the image is stored on an S3FileBackend and processing is enabled."""
        if not self._image_processing:
            return False
        return isinstance(getattr(image, "backend", None), S3FileBackend)

    def transform(
        self, image: Any, dst_path: str, dst_url: str, params: Dict[str, Any], flags: int = 0
    ) -> TransformResult:
        """Intercept pre-rendered thumbnail requests."""
        if not self._base.normalise_params(image, params):
            return TransformError(
                "thumbnail_error",
                params.get("width", 0),
                params.get("height", 0),
                "Invalid parameters",
            )

        if self.applies_to(image):
            url = processing_url(image.url, _target_width(params))
            logger.debug(f"Thumbnail for {image.url} served by remote processing")
            return ThumbnailImage(image=image, url=url, path=None, params=params)

        return self._base.transform(image, dst_path, dst_url, params, flags)

    def scripted_transform(self, image: Any, script: str, params: Dict[str, Any]) -> Optional[TransformResult]:
        """
        Intercept on-demand thumbnail requests.

        Only rewrites when the image must be rendered or the requested width
        is below the original width; otherwise the base handler decides.
        """
        if not self._base.normalise_params(image, params):
            return None

        if self.applies_to(image):
            if image.must_render() or params["width"] < image.width:
                url = processing_url(image.url, _target_width(params))
                return ThumbnailImage(image=image, url=url, path=None, params=params)

        return self._base.scripted_transform(image, script, params)


def _target_width(params: Dict[str, Any]) -> int:
    return params.get("physical_width") or params["width"]
