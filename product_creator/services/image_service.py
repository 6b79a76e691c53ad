"""
Image fetching for the vision stage.

Resolves pipeline images into inline payloads: http(s) URLs are downloaded
with httpx (transient network failures are retried with exponential
backoff), ``file://`` URLs are read from disk, and images that already carry
bytes are passed through untouched.
"""

from __future__ import annotations

import asyncio
import base64
import mimetypes
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from product_creator.config.settings import Settings, get_settings
from product_creator.models.schemas import ImagePayload, PipelineImage
from product_creator.utils.errors import AppError
from product_creator.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


class ImageFetchError(AppError):
    """An image could not be loaded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not load image {url}: {reason}")
        self.url = url
        self.reason = reason


class ImageFetcher:
    """Loads image bytes and mime types for VisionCompletionRequest payloads."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.image_fetch_timeout_seconds),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def load_all(self, images: list[PipelineImage]) -> list[ImagePayload]:
        """Load every image in order. Fails on the first image that cannot be loaded."""
        return [await self.load(image) for image in images]

    async def load(self, image: PipelineImage) -> ImagePayload:
        """Inline payload for one pipeline image."""
        if image.data:
            return ImagePayload(data=image.data, mime_type=image.mime_type or DEFAULT_MIME_TYPE)

        scheme = urlparse(image.url).scheme
        if scheme in ("http", "https"):
            data, mime_type = await self.fetch(image.url)
        elif scheme == "file":
            data, mime_type = await self._read_file(image.url)
        elif scheme == "data":
            data, mime_type = self._decode_data_url(image.url)
        else:
            raise ImageFetchError(image.url, f"unsupported URL scheme {scheme!r}")

        if not data:
            raise ImageFetchError(image.url, "empty image")
        return ImagePayload(data=data, mime_type=mime_type or image.mime_type or DEFAULT_MIME_TYPE)

    async def fetch(self, url: str) -> tuple[bytes, Optional[str]]:
        """
        Download ``url`` and return ``(bytes, mime type)``.

        Connection errors and timeouts are retried; HTTP error statuses are not.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.image_fetch_max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self.client.get(url)
        except httpx.TransportError as e:
            raise ImageFetchError(url, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ImageFetchError(url, f"HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").split(";")[0].strip() or None
        logger.debug("Fetched image", url=url, bytes=len(response.content), mime_type=content_type)
        return response.content, content_type or _guess_mime_type(url)

    async def _read_file(self, url: str) -> tuple[bytes, Optional[str]]:
        path = Path(url2pathname(unquote(urlparse(url).path)))
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ImageFetchError(url, str(e)) from e
        return data, _guess_mime_type(path.name)

    @staticmethod
    def _decode_data_url(url: str) -> tuple[bytes, Optional[str]]:
        header, _, payload = url.partition(",")
        mime_type = header[len("data:"):].split(";")[0] or None
        try:
            if ";base64" in header:
                return base64.b64decode(payload, validate=True), mime_type
            return unquote(payload).encode(), mime_type
        except ValueError as e:
            raise ImageFetchError(url[:40], "invalid data URL") from e


def _guess_mime_type(name: str) -> Optional[str]:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type


__all__ = ["ImageFetcher", "ImageFetchError"]
