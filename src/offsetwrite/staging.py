"""
Re-readable local staging for write calls.

The write path needs the exact byte count before planning and must be able
to read the payload twice (checksum, then upload). StagingBuffer copies the
caller's stream into a spooled temporary file that stays in memory for
small writes and spills to disk beyond a threshold.
"""
from __future__ import annotations

import io
import logging
import tempfile
from typing import BinaryIO, Iterable, List, Optional

from .checksum import CHUNK_SIZE
from .storage.errors import ReadFailure

__all__ = ["StagingBuffer", "ZeroFill", "ConcatReader"]

logger = logging.getLogger(__name__)


class StagingBuffer:
    """
    Fully-buffered copy of one write call's input stream.

    Owned by a single write call and closed on every exit path; use it as a
    context manager.
    """

    def __init__(self, spool_max_bytes: int, directory: Optional[str] = None):
        self._file = tempfile.SpooledTemporaryFile(
            max_size=spool_max_bytes, mode="w+b", prefix="offsetwrite.", dir=directory
        )
        self._size = 0
        self._closed = False

    @property
    def size(self) -> int:
        """Number of bytes staged."""
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    def stage(self, source: BinaryIO | Iterable[bytes]) -> int:
        """
        Copy the caller's stream into the buffer.

        Args:
            source: File-like with read() or an iterable of byte chunks

        Returns:
            Number of bytes staged

        Raises:
            ReadFailure: If reading the source or writing the buffer fails
        """
        written = 0
        try:
            if hasattr(source, "read"):
                for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
                    self._file.write(chunk)
                    written += len(chunk)
            else:
                for chunk in source:
                    self._file.write(chunk)
                    written += len(chunk)
            self._file.flush()
        except (OSError, ValueError) as e:
            raise ReadFailure(f"Failed to stage input stream after {written} bytes: {e}") from e

        self._size += written
        logger.debug(f"Staged {written} bytes")
        return written

    def rewind(self) -> BinaryIO:
        """Position the buffer at its start and return it for reading."""
        try:
            self._file.seek(0)
        except OSError as e:
            raise ReadFailure(f"Failed to rewind staging buffer: {e}") from e
        return self._file

    def close(self) -> None:
        """Release the backing memory or temp file. Safe to call twice."""
        if not self._closed:
            self._file.close()
            self._closed = True

    def __enter__(self) -> StagingBuffer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ZeroFill(io.RawIOBase):
    """Seekable reader producing length zero bytes without allocating them."""

    def __init__(self, length: int):
        if length < 0:
            raise ValueError("length must be non-negative")
        self._length = length
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        n = min(len(b), self._length - self._pos)
        if n <= 0:
            return 0
        b[:n] = bytes(n)
        self._pos += n
        return n

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            pos = offset
        elif whence == io.SEEK_CUR:
            pos = self._pos + offset
        elif whence == io.SEEK_END:
            pos = self._length + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if pos < 0:
            raise ValueError(f"Negative seek position {pos}")
        self._pos = pos
        return pos

    def tell(self) -> int:
        return self._pos


class ConcatReader(io.RawIOBase):
    """Read several binary streams back to back as one."""

    def __init__(self, readers: Iterable[BinaryIO]):
        self._readers: List[BinaryIO] = list(readers)
        self._current = 0

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while self._current < len(self._readers):
            data = self._readers[self._current].read(len(b))
            if data:
                n = len(data)
                b[:n] = data
                return n
            self._current += 1
        return 0
