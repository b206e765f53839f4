"""
Download cache invalidation.

After a key changes, the CDN-side cache entry for it is dropped with a GET
against the refresh endpoint. Failures are logged and never raised: a stale
cache entry must not fail a write that already succeeded.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional

import httpx

from ..settings import Settings
from .compose import build_http_client

__all__ = ["CacheRefresher", "cache_key", "to_base36"]

logger = logging.getLogger(__name__)


def to_base36(value: int) -> str:
    """Lowercase base-36 rendering of a non-negative integer."""
    if value < 0:
        raise ValueError("value must be non-negative")
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while True:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
        if value == 0:
            return out


def cache_key(user_uid: int, bucket: str, path: str) -> str:
    return f"io:{to_base36(user_uid)}:{bucket}:{path}"


class CacheRefresher:
    """Drops cache entries for changed keys; a no-op when not configured."""

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None):
        self._settings = settings
        self.enabled = bool(settings.refresh_cache_url)
        self.client = build_http_client(settings, transport=transport) if self.enabled else None

    def refresh(self, path: str) -> bool:
        """
        Invalidate the cache entry for path.

        Returns:
            True if the endpoint acknowledged the refresh
        """
        if not self.enabled or not path:
            return False

        key = cache_key(self._settings.user_uid, self._settings.bucket, path)
        encoded = base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii")
        url = f"{self._settings.refresh_cache_url.rstrip('/')}/{encoded}"

        try:
            response = self.client.get(url)
        except httpx.RequestError as e:
            logger.warning(f"Cache refresh failed for {path}: {e}")
            return False

        if not response.is_success:
            logger.warning(f"Cache refresh for {path} returned {response.status_code}")
            return False

        logger.debug(f"Cache refreshed for {path}")
        return True

    def close(self):
        if self.client is not None:
            self.client.close()
