"""
Object storage service — uploads media to a Supabase Storage bucket.

Objects are addressed by key inside one bucket and served from the bucket's
public URL. Keys are timestamped by the caller, so uploads never overwrite.
"""
from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import quote

import httpx

from domain.constants import STORAGE_CACHE_CONTROL
from domain.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        ...

    def public_url(self, key: str) -> str:
        ...


class SupabaseObjectStore:
    """Supabase Storage REST client for a single public bucket."""

    def __init__(self, base_url: str, service_key: str, bucket: str, timeout: float = 60.0):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout

    def _get_headers(self, content_type: str) -> dict:
        if not self.base_url or not self.service_key:
            raise UpstreamServiceError("Storage is not configured")
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": content_type,
            "Cache-Control": STORAGE_CACHE_CONTROL,
            "x-upsert": "false",
        }

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        """
        Upload raw bytes under ``key``.

        Raises:
            UpstreamServiceError: on network failure or a non-2xx response
        """
        headers = self._get_headers(content_type)
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(key)}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, content=data)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Storage upload failed for {key}: {e}")
            raise UpstreamServiceError("File upload failed") from e

        logger.info(f"Stored {key} ({len(data)} bytes, {content_type})")

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(key)}"
