"""
Compose client for the backend's parts endpoint.

Sends one streaming multipart request that materializes a new object from
an ordered manifest of uploaded and copied parts. Compose is atomic on the
backend: either the new version appears whole or the previous one remains.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Mapping, Optional

import httpx

from ..manifest import PartManifest
from ..settings import Settings
from .encoder import encode_compose_request
from .errors import ComposeRejected, TransportFailure

__all__ = ["ComposeClient", "ComposeResult", "USER_AGENT", "build_http_client", "error_message"]

logger = logging.getLogger(__name__)

USER_AGENT = "offsetwrite/0.1.0"


@dataclass(frozen=True)
class ComposeResult:
    """Decoded backend reply to a successful compose."""
    key: Optional[str]
    hash: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)


def build_http_client(settings: Settings, *, transport: Optional[httpx.BaseTransport] = None,
                      headers: Optional[Dict[str, str]] = None) -> httpx.Client:
    """HTTP client with the timeouts and headers shared by every backend client."""
    timeout = settings.http_timeout_s
    base_headers = {"User-Agent": USER_AGENT}
    base_headers.update(headers or {})
    return httpx.Client(
        timeout=httpx.Timeout(connect=5.0, read=timeout, write=timeout, pool=5.0),
        follow_redirects=True,
        headers=base_headers,
        transport=transport,
    )


def error_message(response: httpx.Response) -> str:
    """Backend error text: the JSON "error" field when present, else the raw body."""
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.text.strip()


class ComposeClient:
    """
    HTTP client for compose requests.

    The underlying httpx.Client may be shared across concurrent write calls;
    it carries no per-call state. Requests are never retried: a request body
    is streamed from its sources exactly once.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize compose client.

        Args:
            settings: Settings selecting the upload endpoint and timeouts
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self._settings = settings
        self.endpoint = f"{settings.upload_endpoint}/parts"
        self.client = build_http_client(settings, transport=transport)

    def compose(self, token: str, key: Optional[str], manifest: PartManifest,
                sources: Mapping[int, BinaryIO], *,
                params: Optional[Mapping[str, str]] = None) -> ComposeResult:
        """
        Compose a new object from manifest.

        Args:
            token: Upload token for the target scope
            key: Target key (None lets the backend assign one)
            manifest: Ordered parts
            sources: Byte source per direct part, keyed by part index
            params: Opaque metadata fields

        Returns:
            ComposeResult decoded from the backend reply

        Raises:
            InvalidManifest: Malformed manifest, detected before sending
            SourceNotSeekable: Checksum needed over an unrewindable source
            ReadFailure: Checksum pass failed to read a source
            TransportFailure: Network failure or a part's bytes could not be streamed
            ComposeRejected: Backend answered with a non-success status
        """
        body = encode_compose_request(token, key, manifest, sources, params=params)
        logger.debug(f"Composing {key!r} from {len(manifest.parts)} part(s) via {self.endpoint}")

        try:
            response = self.client.post(self.endpoint, content=body, headers=body.headers)
        except TransportFailure:
            raise
        except httpx.RequestError as e:
            raise TransportFailure(f"Network error composing {key!r}: {e}") from e

        if not response.is_success:
            message = error_message(response)
            logger.debug(f"Compose of {key!r} rejected: {response.status_code} {message}")
            raise ComposeRejected(response.status_code, message)

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = {}
        if not isinstance(payload, dict):
            payload = {"result": payload}

        return ComposeResult(key=payload.get("key", key), hash=payload.get("hash"), raw=payload)

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
