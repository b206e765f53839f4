"""
Streaming multipart encoding of compose and form-upload requests.

The compose request is one multipart/form-data body whose fields are, in
order: token, optional key, caller metadata, one file field per direct part
named "part-<index>", and a final "parts" field holding the JSON manifest.
Direct part bytes are streamed from their sources in chunks; nothing is
buffered beyond a single chunk.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterator, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

from ..checksum import CHUNK_SIZE, resolve_crc32
from ..manifest import CopyPart, DirectPart, PartManifest
from .errors import InvalidManifest, TransportFailure

__all__ = [
    "DirectPartArg",
    "CopyPartArg",
    "ComposeArg",
    "FormField",
    "MultipartBody",
    "encode_compose_request",
    "encode_form_upload",
    "part_field_name",
]

logger = logging.getLogger(__name__)

_CRLF = b"\r\n"


class DirectPartArg(BaseModel):
    """Wire descriptor of a direct part."""
    type: Literal["direct"] = "direct"
    crc32: int = Field(..., ge=0, le=0xFFFFFFFF, description="CRC-32 of the uploaded bytes (0 = unchecked)")


class CopyPartArg(BaseModel):
    """Wire descriptor of a copy part."""
    type: Literal["copy"] = "copy"
    storage_file: str = Field(..., alias="storageFile", description="Source key")
    range: str = Field(..., description="Byte range '<from>-<to>', to=-1 means end of source")

    model_config = {"populate_by_name": True}


class ComposeArg(BaseModel):
    """The JSON document carried by the final "parts" field."""
    mime_type: str = Field(..., alias="mimeType", description="Content type of the composed object")
    parts: List[Union[DirectPartArg, CopyPartArg]] = Field(..., description="Ordered part descriptors")

    model_config = {"populate_by_name": True}

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class FormField:
    """
    One multipart field: either a small text value or a streamed file.

    length is the number of bytes the source must yield; part_index tags
    failures while streaming it.
    """
    name: str
    value: Optional[str] = None
    source: Optional[BinaryIO] = None
    filename: Optional[str] = None
    length: Optional[int] = None
    content_type: str = "application/octet-stream"
    part_index: Optional[int] = None

    def header(self, boundary: str) -> bytes:
        disposition = f'form-data; name="{_quote(self.name)}"'
        lines = [f"--{boundary}"]
        if self.source is not None:
            disposition += f'; filename="{_quote(self.filename or self.name)}"'
            lines.append(f"Content-Disposition: {disposition}")
            lines.append(f"Content-Type: {self.content_type}")
        else:
            lines.append(f"Content-Disposition: {disposition}")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")


class MultipartBody:
    """
    Lazily generated multipart/form-data request body.

    Iterate it (once) to obtain the bytes. content_length is known up front
    when every streamed field declares its length.
    """

    def __init__(self, fields: Sequence[FormField], boundary: Optional[str] = None):
        self.fields = list(fields)
        self.boundary = boundary or secrets.token_hex(15)

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def content_length(self) -> Optional[int]:
        total = 0
        for f in self.fields:
            total += len(f.header(self.boundary)) + len(_CRLF)
            if f.source is None:
                total += len((f.value or "").encode("utf-8"))
            elif f.length is None:
                return None
            else:
                total += f.length
        return total + len(self._closing())

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": self.content_type}
        length = self.content_length
        if length is not None:
            headers["Content-Length"] = str(length)
        return headers

    def __iter__(self) -> Iterator[bytes]:
        for f in self.fields:
            yield f.header(self.boundary)
            if f.source is None:
                yield (f.value or "").encode("utf-8")
            else:
                yield from _stream_source(f)
            yield _CRLF
        yield self._closing()

    def _closing(self) -> bytes:
        return f"--{self.boundary}--\r\n".encode("utf-8")


def part_field_name(index: int) -> str:
    """Field name of the direct part at manifest position index."""
    return f"part-{index}"


def encode_compose_request(token: str, key: Optional[str], manifest: PartManifest,
                           sources: Mapping[int, BinaryIO], *,
                           params: Optional[Mapping[str, str]] = None,
                           boundary: Optional[str] = None) -> MultipartBody:
    """
    Build the streaming body of a compose request.

    Validation and checksumming happen here, before any byte is sent:
    an invalid manifest or an unseekable source never starts an upload.

    Args:
        token: Upload token
        key: Target key, or None to let the backend assign one
        manifest: Parts to compose
        sources: Byte source per direct part, keyed by part index
        params: Opaque metadata fields, sent in the given order
        boundary: Multipart boundary (random if None)

    Returns:
        MultipartBody ready to be streamed

    Raises:
        InvalidManifest: If a copy range is malformed or a direct part has no source
        SourceNotSeekable: If a checksum is needed over an unrewindable source
        ReadFailure: If the checksum pass fails to read a source
    """
    manifest.validate()

    descriptors: List[Union[DirectPartArg, CopyPartArg]] = []
    part_fields: List[FormField] = []

    for part in manifest.parts:
        if isinstance(part, DirectPart):
            source = sources.get(part.index)
            if source is None:
                raise InvalidManifest(f"No byte source for direct part {part.index}")
            crc = resolve_crc32(part, source)
            descriptors.append(DirectPartArg(crc32=crc))
            name = part_field_name(part.index)
            part_fields.append(FormField(
                name=name,
                source=source,
                filename=name,
                length=part.length,
                part_index=part.index,
            ))
        elif isinstance(part, CopyPart):
            descriptors.append(CopyPartArg(storage_file=part.source_key, range=part.range_string))

    arg = ComposeArg(mime_type=manifest.mime_type, parts=descriptors)

    fields = _leading_fields(token, key, params)
    fields.extend(part_fields)
    fields.append(FormField(name="parts", value=arg.to_json()))

    logger.debug(f"Encoded compose request for {key!r}: {len(part_fields)} direct, "
                 f"{len(manifest.parts) - len(part_fields)} copy part(s)")
    return MultipartBody(fields, boundary=boundary)


def encode_form_upload(token: str, key: Optional[str], source: BinaryIO, length: int, *,
                       mime_type: Optional[str] = None,
                       params: Optional[Mapping[str, str]] = None,
                       boundary: Optional[str] = None) -> MultipartBody:
    """
    Build the streaming body of a whole-object form upload.

    Fields: token, optional key, metadata, then the "file" field.
    """
    fields = _leading_fields(token, key, params)
    fields.append(FormField(
        name="file",
        source=source,
        filename=key or "file",
        length=length,
        content_type=mime_type or "application/octet-stream",
        part_index=0,
    ))
    return MultipartBody(fields, boundary=boundary)


def _leading_fields(token: str, key: Optional[str],
                    params: Optional[Mapping[str, str]]) -> List[FormField]:
    fields = [FormField(name="token", value=token)]
    if key is not None:
        fields.append(FormField(name="key", value=key))
    for name, value in (params or {}).items():
        fields.append(FormField(name=name, value=value))
    return fields


def _stream_source(f: FormField) -> Iterator[bytes]:
    """Yield a field's bytes chunk by chunk, enforcing its declared length."""
    remaining = f.length
    while remaining is None or remaining > 0:
        size = CHUNK_SIZE if remaining is None else min(CHUNK_SIZE, remaining)
        try:
            chunk = f.source.read(size)
        except OSError as e:
            raise TransportFailure(f"Failed reading bytes of part {f.part_index}: {e}",
                                   part_index=f.part_index) from e
        if not chunk:
            break
        if remaining is not None:
            remaining -= len(chunk)
        yield chunk

    if remaining:
        raise TransportFailure(
            f"Part {f.part_index} ended {remaining} bytes short of its declared length",
            part_index=f.part_index,
        )


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')
