"""
Remote image fetcher.

Downloads an image URL and returns it base64-encoded for inline
submission to a vision back end.
"""

import base64
from typing import Optional

import httpx
import structlog

from ketolens.domain.shared.errors import (
    ExternalServiceError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)


class HttpImageFetcher:
    """IImageFetcher implementation over httpx."""

    def __init__(
        self,
        timeout: float = 10.0,
        max_bytes: int = 10 * 1024 * 1024,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._client = client

    async def fetch_base64(self, url: str) -> str:
        """
        Download an image and return it base64-encoded.

        Raises:
            TransientNetworkError: On timeout, connection error or 5xx
            ExternalServiceError: On other HTTP errors or oversized images
        """
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout, follow_redirects=True
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Image download timeout: {url}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status >= 500:
                raise TransientNetworkError(f"Image download failed: {status}") from e
            raise ExternalServiceError(f"Image download failed: {status}") from e
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"Image download network error: {e}") from e

        content = response.content
        if not content:
            raise ExternalServiceError(f"Image download returned no data: {url}")
        if len(content) > self.max_bytes:
            raise ExternalServiceError(
                f"Image too large: {len(content)} bytes (max {self.max_bytes})"
            )

        logger.debug("Image downloaded", url=url, size_bytes=len(content))
        return base64.b64encode(content).decode("ascii")
