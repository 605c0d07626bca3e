"""
Image URLs and the HTTP media loader.

Images come from a text-to-image endpoint keyed by prompt and seed. The seed
is the per-instance cache key: the same (prompt, seed) pair always yields the
same URL, so the request made while preparing an item is the one the
presentation layer hits later, straight out of the warmed cache.
"""

from __future__ import annotations

import secrets
from urllib.parse import quote

import httpx
from loguru import logger

from aleph_quiz.config import Settings, get_settings
from aleph_quiz.models import MediaRef, MediaStatus


def new_cache_key() -> str:
    """Short random seed for one option of one item instance."""
    return secrets.token_hex(4)


def build_media_url(
    ref: MediaRef,
    cache_key: str,
    settings: Settings | None = None,
) -> str:
    """Build the deterministic image URL for a media reference."""
    settings = settings or get_settings()
    prompt = quote(f"{settings.image_style_prefix}{ref.prompt}", safe="")
    size = settings.image_size
    return (
        f"{settings.image_base_url}{prompt}"
        f"?width={size}&height={size}&nologo=true&seed={cache_key}"
    )


class HttpMediaLoader:
    """Resolve image URLs over HTTP. Never raises."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
    ):
        """
        Initialize the loader.

        Args:
            client: Shared HTTP client (the loader creates and owns one if omitted)
            timeout_seconds: Per-request timeout for an owned client
        """
        if timeout_seconds is None:
            timeout_seconds = get_settings().media_request_timeout_seconds
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this loader created it."""
        if self._owns_client:
            await self.client.aclose()

    async def resolve(self, url: str) -> MediaStatus:
        """
        Fetch a media URL so it is cached for display.

        Returns:
            LOADED on a 2xx response, FAILED otherwise
        """
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Media request failed for {}: {}", url, e)
            return MediaStatus.FAILED

        if response.is_success:
            return MediaStatus.LOADED

        logger.warning("Media request for {} returned {}", url, response.status_code)
        return MediaStatus.FAILED
