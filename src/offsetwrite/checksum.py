"""
CRC-32 integrity checksums for direct parts.

Checksumming consumes the payload once before the upload pass reads it
again, so the source must be rewindable.
"""
from __future__ import annotations

import logging
import zlib
from typing import BinaryIO

from .manifest import DirectPart
from .storage.errors import ReadFailure, SourceNotSeekable

__all__ = ["compute_crc32", "resolve_crc32", "CHUNK_SIZE"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def compute_crc32(source: BinaryIO, *, chunk_size: int = CHUNK_SIZE) -> int:
    """
    Compute the IEEE CRC-32 of a source from its start, then rewind it.

    Args:
        source: Seekable binary stream
        chunk_size: Read size per iteration

    Returns:
        Unsigned 32-bit checksum

    Raises:
        SourceNotSeekable: If the source cannot be rewound (checked before reading)
        ReadFailure: If reading or rewinding raises an I/O error
    """
    if not _is_rewindable(source):
        raise SourceNotSeekable("Checksum requested over a source that cannot be rewound")

    crc = 0
    try:
        source.seek(0)
        for chunk in iter(lambda: source.read(chunk_size), b""):
            crc = zlib.crc32(chunk, crc)
        source.seek(0)
    except OSError as e:
        raise ReadFailure(f"Failed to read source for checksum: {e}") from e

    return crc & 0xFFFFFFFF


def resolve_crc32(part: DirectPart, source: BinaryIO) -> int:
    """
    Checksum to declare for a direct part.

    The precomputed value wins; otherwise it is computed when the part asks
    for checking. Parts that do not ask declare 0.
    """
    if part.crc32 is not None:
        return part.crc32
    if not part.check_crc:
        return 0
    crc = compute_crc32(source)
    logger.debug(f"Computed crc32 {crc:#010x} for part {part.index}")
    return crc


def _is_rewindable(source: BinaryIO) -> bool:
    """
    Whether source can be seeked back to its start.

    Streams without seekable() (SpooledTemporaryFile before Python 3.11)
    qualify when they report a position through tell().
    """
    seekable = getattr(source, "seekable", None)
    if seekable is not None:
        return seekable()
    if not hasattr(source, "seek") or not hasattr(source, "tell"):
        return False
    try:
        source.tell()
    except (OSError, ValueError):
        return False
    return True
