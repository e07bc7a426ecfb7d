"""QuestProof photo fetcher (photo reference -> raw bytes)."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0  # seconds
MAX_PHOTO_BYTES = 25 * 1024 * 1024


class ImageFetcher:
    """Downloads submission photos. Failure is non-fatal and yields None."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, client: httpx.AsyncClient | None = None) -> None:
        self.timeout = timeout
        self._client = client

    async def fetch(self, url: str) -> bytes | None:
        try:
            if self._client is not None:
                return await self._get(self._client, url)
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                return await self._get(client, url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Photo fetch failed for %s: %s", url[:80], exc)
            return None

    async def _get(self, client: httpx.AsyncClient, url: str) -> bytes | None:
        resp = await client.get(url)
        if resp.status_code != 200:
            logger.warning("Photo fetch returned HTTP %d for %s", resp.status_code, url[:80])
            return None
        content = resp.content
        if len(content) > MAX_PHOTO_BYTES:
            logger.warning("Photo %s exceeds %d bytes, ignoring", url[:80], MAX_PHOTO_BYTES)
            return None
        logger.debug("Fetched %d bytes from %s", len(content), url[:80])
        return content
