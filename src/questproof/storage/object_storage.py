"""QuestProof object storage (submission photo files).

Photos are referenced by public URLs of the form
``<base>/storage/v1/object/public/<bucket>/<path>``; deletion needs the
bucket-relative <path>.
"""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import unquote, urlparse

import httpx

logger = logging.getLogger(__name__)

PUBLIC_MARKER = "/object/public/"


def extract_storage_key(url: str | None, bucket: str) -> str | None:
    """Bucket-relative path of a public object URL, or None when malformed."""
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    _, sep, tail = parsed.path.partition(PUBLIC_MARKER)
    if not sep or not tail:
        return None
    prefix = f"{bucket}/"
    if tail.startswith(prefix):
        tail = tail[len(prefix) :]
    key = unquote(tail).strip("/")
    return key or None


def collect_storage_keys(urls: list[str | None], bucket: str) -> list[str]:
    """Parse every URL, skipping malformed ones instead of failing the batch."""
    keys: list[str] = []
    for url in urls:
        key = extract_storage_key(url, bucket)
        if key is None:
            if url:
                logger.warning("Skipping unparseable storage URL: %s", url[:120])
            continue
        if key not in keys:
            keys.append(key)
    return keys


class ObjectStorage(Protocol):
    bucket: str

    async def remove(self, keys: list[str]) -> list[str]:
        """Delete objects, returning the keys reported as removed."""
        ...


class HttpObjectStorage:
    """Storage REST API client (``DELETE /storage/v1/object/<bucket>``)."""

    def __init__(
        self,
        base_url: str,
        bucket: str,
        service_key: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.service_key = service_key
        self.timeout = timeout
        self._client = client

    async def remove(self, keys: list[str]) -> list[str]:
        if not keys:
            return []
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        if self._client is not None:
            resp = await self._client.request("DELETE", url, json={"prefixes": keys}, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request("DELETE", url, json={"prefixes": keys}, headers=headers)
        resp.raise_for_status()
        removed = [item.get("name") for item in resp.json() if isinstance(item, dict) and item.get("name")]
        logger.info("Removed %d/%d objects from %s", len(removed), len(keys), self.bucket)
        return removed


class InMemoryObjectStorage:
    """Process-local storage used when no storage URL is configured."""

    def __init__(self, bucket: str = "quest-submissions") -> None:
        self.bucket = bucket
        self.objects: dict[str, bytes] = {}

    def put(self, key: str, content: bytes) -> None:
        self.objects[key] = content

    async def remove(self, keys: list[str]) -> list[str]:
        removed = [k for k in keys if self.objects.pop(k, None) is not None]
        return removed
