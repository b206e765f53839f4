"""
Part manifest types for compose requests.

A manifest is the ordered list of parts the backend concatenates into a new
object: direct parts carry fresh bytes uploaded in the same request, copy
parts reference a byte range of an object that is already stored.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .settings import DEFAULT_MIME_TYPE
from .storage.errors import InvalidManifest

# Range end meaning "through the end of the source object at compose time"
OPEN_ENDED = -1

__all__ = ["OPEN_ENDED", "DirectPart", "CopyPart", "PartDescriptor", "PartManifest"]


@dataclass(frozen=True, slots=True)
class DirectPart:
    """
    Manifest entry whose bytes are uploaded with the request.

    index is the part's position in the manifest; the encoder names the
    uploaded field after it so the backend can correlate the two.
    """
    index: int
    length: int
    crc32: Optional[int] = None      # Precomputed checksum, if the caller has one
    check_crc: bool = False          # Compute a checksum when crc32 is None
    zero_fill: bool = False          # Gap filler, all bytes are zero

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("index must be non-negative")
        if self.length < 0:
            raise ValueError("length must be non-negative")
        if self.crc32 is not None and not 0 <= self.crc32 <= 0xFFFFFFFF:
            raise ValueError(f"crc32 must be an unsigned 32-bit value, got {self.crc32}")


@dataclass(frozen=True, slots=True)
class CopyPart:
    """
    Manifest entry referencing bytes [start, end) of a stored object.

    end == OPEN_ENDED copies through the end of the source.
    """
    index: int
    source_key: str
    start: int
    end: int = OPEN_ENDED

    @property
    def range_string(self) -> str:
        return f"{self.start}-{self.end}"

    def validate(self) -> None:
        """
        Check the range invariant.

        Raises:
            InvalidManifest: If start is negative or end is neither the
                open-ended sentinel nor strictly greater than start
        """
        if self.start < 0:
            raise InvalidManifest(f"Part {self.index}: range start must be >= 0, got {self.start}")
        if self.end != OPEN_ENDED and self.end <= self.start:
            raise InvalidManifest(
                f"Part {self.index}: invalid range {self.range_string} for {self.source_key}"
            )

    def resolved_length(self, source_size: int) -> int:
        """Bytes this part contributes when the source is source_size long."""
        end = source_size if self.end == OPEN_ENDED else min(self.end, source_size)
        return max(0, end - self.start)


PartDescriptor = Union[DirectPart, CopyPart]


@dataclass(frozen=True)
class PartManifest:
    """
    Ordered parts plus the content type of the object compose will produce.

    Order is fixed at construction and significant.
    """
    parts: Tuple[PartDescriptor, ...]
    mime_type: str = DEFAULT_MIME_TYPE

    def __post_init__(self) -> None:
        for position, part in enumerate(self.parts):
            if part.index != position:
                raise ValueError(f"Part at position {position} carries index {part.index}")

    def direct_parts(self) -> Tuple[DirectPart, ...]:
        return tuple(p for p in self.parts if isinstance(p, DirectPart))

    def copy_parts(self) -> Tuple[CopyPart, ...]:
        return tuple(p for p in self.parts if isinstance(p, CopyPart))

    @property
    def requires_compose(self) -> bool:
        """False when every part is direct and a plain PUT can store it."""
        return bool(self.copy_parts())

    def validate(self) -> None:
        """
        Reject the manifest if any copy range is malformed.

        Raises:
            InvalidManifest: On the first invalid copy part
        """
        if not self.parts:
            raise InvalidManifest("Manifest has no parts")
        for part in self.copy_parts():
            part.validate()

    def resolved_size(self, existing_size: int) -> int:
        """
        Size of the object compose would produce.

        Copy parts are resolved against a source of existing_size bytes.
        """
        total = 0
        for part in self.parts:
            if isinstance(part, DirectPart):
                total += part.length
            else:
                total += part.resolved_length(existing_size)
        return total
