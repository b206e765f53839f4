"""
Offset write planning.

Translates "write N bytes at position P into an object of size S" into the
ordered part manifest that makes the backend's compose operation produce the
same content a seekable file would. Pure functions, no I/O.
"""
from __future__ import annotations

from typing import List

from .manifest import OPEN_ENDED, CopyPart, DirectPart, PartDescriptor, PartManifest
from .settings import DEFAULT_MIME_TYPE

__all__ = ["plan_offset_write", "expected_size"]


def plan_offset_write(key: str, existing_size: int, offset: int, new_length: int, *,
                      exists: bool = True,
                      mime_type: str = DEFAULT_MIME_TYPE,
                      check_crc: bool = False) -> PartManifest:
    """
    Plan the manifest for writing new_length bytes at offset.

    The composed object holds bytes [0, offset) of the current object (zero
    padded past its end), then the new bytes, then whatever of the current
    object survives beyond offset + new_length.

    Args:
        key: Key being written; copy parts reference it
        existing_size: Current object size (ignored when exists is False)
        offset: Write start position
        new_length: Number of staged bytes to write
        exists: Whether an object is currently stored under key
        mime_type: Content type of the resulting object
        check_crc: Ask for checksums on the new-data direct part

    Returns:
        PartManifest whose resolved size equals expected_size(...)

    Raises:
        ValueError: If offset, existing_size or new_length is negative
    """
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")
    if existing_size < 0:
        raise ValueError(f"existing_size must be non-negative, got {existing_size}")
    if new_length < 0:
        raise ValueError(f"new_length must be non-negative, got {new_length}")

    builder = _PartsBuilder(key, check_crc)

    if not exists or existing_size == 0:
        # Nothing to copy from (an empty object has no valid range either)
        if offset > 0:
            builder.zeros(offset)
        builder.data(new_length)
    elif offset == 0:
        builder.data(new_length)
        if new_length < existing_size:
            builder.copy(new_length, OPEN_ENDED)
    elif offset == existing_size:
        builder.copy(0, OPEN_ENDED)
        builder.data(new_length)
    elif offset < existing_size:
        builder.copy(0, offset)
        builder.data(new_length)
        tail_start = offset + new_length
        if tail_start < existing_size:
            builder.copy(tail_start, OPEN_ENDED)
    else:
        builder.copy(0, OPEN_ENDED)
        builder.zeros(offset - existing_size)
        builder.data(new_length)

    return PartManifest(parts=tuple(builder.parts), mime_type=mime_type)


def expected_size(existing_size: int, offset: int, new_length: int) -> int:
    """Size of the object after writing new_length bytes at offset."""
    return max(existing_size, offset + new_length)


class _PartsBuilder:
    """Appends parts with consecutive indexes."""

    def __init__(self, key: str, check_crc: bool):
        self.key = key
        self.check_crc = check_crc
        self.parts: List[PartDescriptor] = []

    def data(self, length: int) -> None:
        self.parts.append(DirectPart(index=len(self.parts), length=length, check_crc=self.check_crc))

    def zeros(self, length: int) -> None:
        self.parts.append(DirectPart(index=len(self.parts), length=length,
                                     check_crc=self.check_crc, zero_fill=True))

    def copy(self, start: int, end: int) -> None:
        self.parts.append(CopyPart(index=len(self.parts), source_key=self.key, start=start, end=end))
