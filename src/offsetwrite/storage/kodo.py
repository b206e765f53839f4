"""
Kodo object store client.

Implements the ObjectStore protocol over the backend's REST endpoints:
stat/delete/move on the management host, listing on the list host, form
uploads on the upload host and ranged downloads from the bucket domain.
Request signing is not done here; management calls carry the opaque
Authorization value from settings and uploads carry a minted token.
"""
from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, Optional
from urllib.parse import quote

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..settings import Settings
from .base import ListPage, ObjectStat, ObjectStore, TokenMinter
from .compose import build_http_client, error_message
from .encoder import encode_form_upload
from .errors import AlreadyExists, BackendError, NotFound, TransportFailure

__all__ = ["KodoStore", "encode_entry"]

logger = logging.getLogger(__name__)

# Backend-specific status codes
STATUS_NO_SUCH_FILE = 612
STATUS_FILE_EXISTS = 614


def encode_entry(bucket: str, key: str) -> str:
    """URL-safe base64 of "<bucket>:<key>", the backend's entry addressing."""
    return base64.urlsafe_b64encode(f"{bucket}:{key}".encode("utf-8")).decode("ascii")


class KodoStore(ObjectStore):
    """
    ObjectStore adapter for Kodo buckets.

    One httpx.Client serves every call; it holds no per-call state and may
    be shared between threads.
    """

    def __init__(self, settings: Settings, tokens: TokenMinter, *,
                 transport: Optional[httpx.BaseTransport] = None) -> None:
        """
        Initialize store client.

        Args:
            settings: Settings with bucket, hosts and timeouts
            tokens: Upload token source for whole-object PUTs
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self._settings = settings
        self._tokens = tokens
        self.bucket = settings.bucket

        # Only management calls are authorized by header
        self._manage_headers: Dict[str, str] = {}
        if settings.authorization:
            self._manage_headers["Authorization"] = settings.authorization
        self.client = build_http_client(settings, transport=transport)

        logger.debug(f"Kodo store for bucket {self.bucket}: up={settings.upload_endpoint} "
                     f"rs={settings.manage_endpoint} rsf={settings.list_endpoint}")

    def stat(self, key: str) -> ObjectStat:
        url = f"{self._settings.manage_endpoint}/stat/{encode_entry(self.bucket, key)}"
        response = self._send("GET", url, key)
        _raise_for_status(response, key)

        data = response.json()
        return ObjectStat(
            key=key,
            size=int(data.get("fsize", 0)),
            modified=_put_time(data.get("putTime")),
            hash=data.get("hash"),
            mime_type=data.get("mimeType"),
        )

    def put(self, key: str, source: BinaryIO, length: int,
            mime_type: Optional[str] = None) -> None:
        token = self._tokens.mint_upload_token(
            f"{self.bucket}:{key}", self._settings.token_expiry_s, [key]
        )
        body = encode_form_upload(token, key, source, length,
                                  mime_type=mime_type or self._settings.mime_type)
        url = f"{self._settings.upload_endpoint}/"
        logger.debug(f"Uploading {length} bytes to {key!r}")

        try:
            response = self.client.post(url, content=body, headers=body.headers)
        except TransportFailure:
            raise
        except httpx.RequestError as e:
            raise TransportFailure(f"Network error uploading {key!r}: {e}") from e
        _raise_for_status(response, key)

    def open_range(self, key: str, offset: int = 0) -> Iterator[bytes]:
        """
        Stream the object from offset to its end.

        Lazy: the request is sent when iteration starts.
        """
        url = self.url_for(key)
        headers = {"Range": f"bytes={offset}-"} if offset > 0 else {}
        try:
            with self.client.stream("GET", url, headers=headers) as response:
                if response.status_code == 416:
                    return
                if not response.is_success:
                    response.read()
                    _raise_for_status(response, key)
                yield from response.iter_bytes()
        except httpx.RequestError as e:
            raise TransportFailure(f"Network error reading {key!r}: {e}") from e

    def list_page(self, prefix: str, delimiter: str = "/", marker: str = "",
                  limit: int = 1000) -> ListPage:
        params = {"bucket": self.bucket, "prefix": prefix, "limit": str(limit)}
        if delimiter:
            params["delimiter"] = delimiter
        if marker:
            params["marker"] = marker

        url = f"{self._settings.list_endpoint}/list"
        response = self._send("GET", url, prefix, params=params)
        _raise_for_status(response, prefix)

        data = response.json()
        items = [
            ObjectStat(
                key=item["key"],
                size=int(item.get("fsize", 0)),
                modified=_put_time(item.get("putTime")),
                hash=item.get("hash"),
                mime_type=item.get("mimeType"),
            )
            for item in data.get("items") or []
        ]
        return ListPage(
            items=items,
            common_prefixes=list(data.get("commonPrefixes") or []),
            marker=data.get("marker") or "",
        )

    def delete(self, key: str) -> None:
        url = f"{self._settings.manage_endpoint}/delete/{encode_entry(self.bucket, key)}"
        response = self._send("POST", url, key)
        _raise_for_status(response, key)

    def move(self, src: str, dst: str, *, force: bool = False) -> None:
        url = (f"{self._settings.manage_endpoint}/move/"
               f"{encode_entry(self.bucket, src)}/{encode_entry(self.bucket, dst)}"
               f"/force/{'true' if force else 'false'}")
        response = self._send("POST", url, src)
        if response.status_code == STATUS_FILE_EXISTS:
            raise AlreadyExists(dst)
        _raise_for_status(response, src)

    def url_for(self, key: str) -> str:
        """Public download URL of key on the bucket domain."""
        if not self._settings.domain:
            raise ValueError("domain is not configured; downloads need OFFSETWRITE_DOMAIN")
        scheme = "http" if self._settings.insecure else "https"
        return f"{scheme}://{self._settings.domain}/{quote(key.lstrip('/'))}"

    def _send(self, method: str, url: str, key: str, **kwargs) -> httpx.Response:
        kwargs.setdefault("headers", self._manage_headers)
        try:
            if method == "GET":
                return self._get(url, **kwargs)
            return self.client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise TransportFailure(f"Network error on {method} for {key!r}: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectTimeout, httpx.ReadTimeout, httpx.TimeoutException)),
        reraise=True,
    )
    def _get(self, url: str, **kwargs) -> httpx.Response:
        """Idempotent GET, retried on timeouts."""
        return self.client.get(url, **kwargs)

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _raise_for_status(response: httpx.Response, key: str) -> None:
    if response.is_success:
        return
    if response.status_code in (404, STATUS_NO_SUCH_FILE):
        raise NotFound(key)
    raise BackendError(response.status_code, error_message(response))


def _put_time(value: Optional[int]) -> Optional[datetime]:
    """putTime is reported in 100-nanosecond units since the epoch."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1e7, tz=timezone.utc)
