"""
Tests for the compose client over httpx.MockTransport.
"""
from __future__ import annotations

import io
import json

import httpx
import pytest

from offsetwrite.manifest import OPEN_ENDED, CopyPart, DirectPart, PartManifest
from offsetwrite.storage.compose import USER_AGENT, ComposeClient, error_message
from offsetwrite.storage.errors import (
    ComposeRejected,
    InvalidManifest,
    SourceNotSeekable,
    TransportFailure,
)
from tests.helpers.multipart import boundary_from, parse_multipart


class _Unseekable(io.RawIOBase):
    def readable(self):
        return True

    def readinto(self, b):
        return 0


def _append_manifest():
    return PartManifest(parts=(
        CopyPart(0, "k", 0, OPEN_ENDED),
        DirectPart(1, 3, check_crc=True),
    ))


class TestComposeRequest:
    """What goes over the wire."""

    def test_posts_streaming_multipart_to_parts_endpoint(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = request.read()
            return httpx.Response(200, json={"key": "k", "hash": "Fh1"})

        with ComposeClient(settings, transport=httpx.MockTransport(handler)) as client:
            result = client.compose("tok", "k", _append_manifest(), {1: io.BytesIO(b"abc")})

        assert seen["method"] == "POST"
        assert seen["url"] == "http://up.kodo.test/parts"
        assert seen["headers"]["User-Agent"] == USER_AGENT
        assert "Transfer-Encoding" not in seen["headers"]
        assert int(seen["headers"]["Content-Length"]) == len(seen["body"])

        fields = parse_multipart(seen["body"], boundary_from(seen["headers"]["Content-Type"]))
        assert [f.name for f in fields] == ["token", "key", "part-1", "parts"]
        assert json.loads(fields[-1].text)["parts"][0] == {
            "type": "copy", "storageFile": "k", "range": "0--1",
        }

        assert result.key == "k"
        assert result.hash == "Fh1"

    def test_against_fake_backend(self, composer, backend):
        backend.seed("k", b"0123456789")
        composer.compose("tok", "k", _append_manifest(), {1: io.BytesIO(b"abc")})
        assert backend.objects["k"] == b"0123456789abc"

    def test_invalid_manifest_sends_nothing(self, composer, backend):
        manifest = PartManifest(parts=(CopyPart(0, "k", 5, 5),))
        with pytest.raises(InvalidManifest):
            composer.compose("tok", "k", manifest, {})
        assert backend.requests == []

    def test_unseekable_checked_source_sends_nothing(self, composer, backend):
        backend.seed("k", b"0123456789")
        with pytest.raises(SourceNotSeekable):
            composer.compose("tok", "k", _append_manifest(), {1: _Unseekable()})
        assert backend.requests == []
        assert backend.objects["k"] == b"0123456789"


class TestComposeErrors:
    """Error mapping at the client boundary."""

    def test_backend_rejection(self, composer, backend):
        backend.seed("k", b"0123456789")
        backend.failures["compose"] = (403, "quota exceeded")
        with pytest.raises(ComposeRejected) as excinfo:
            composer.compose("tok", "k", _append_manifest(), {1: io.BytesIO(b"abc")})
        assert excinfo.value.status == 403
        assert excinfo.value.message == "quota exceeded"
        assert backend.objects["k"] == b"0123456789"

    def test_network_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with ComposeClient(settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(TransportFailure, match="connection refused"):
                client.compose("tok", "k", _append_manifest(), {1: io.BytesIO(b"abc")})

    def test_source_failure_mid_stream_names_part(self, settings):
        def handler(request):
            request.read()
            return httpx.Response(200, json={})

        manifest = PartManifest(parts=(CopyPart(0, "k", 0, OPEN_ENDED), DirectPart(1, 10)))
        with ComposeClient(settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(TransportFailure) as excinfo:
                client.compose("tok", "k", manifest, {1: io.BytesIO(b"short")})
        assert excinfo.value.part_index == 1


class TestErrorMessage:
    """Backend error text extraction."""

    def test_json_error_field(self):
        assert error_message(httpx.Response(400, json={"error": "bad range"})) == "bad range"

    def test_plain_text(self):
        assert error_message(httpx.Response(502, text="Bad Gateway\n")) == "Bad Gateway"

    def test_empty_body_uses_reason(self):
        assert error_message(httpx.Response(503)) == "Service Unavailable"
