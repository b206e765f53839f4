"""
Storage interfaces for offsetwrite.

These protocols define the boundary between the write path and the backend
client, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Iterator, List, Optional, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class ObjectStat:
    """
    Metadata for a stored object (or an emulated directory).

    Invariants:
    - size: exact byte length (>= 0); 0 for directories
    - modified: last-modified time, None for directories
    """
    key: str
    size: int
    modified: Optional[datetime] = None
    is_dir: bool = False
    hash: Optional[str] = None
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class ListPage:
    """One page of a prefix/delimiter listing."""
    items: List[ObjectStat] = field(default_factory=list)
    common_prefixes: List[str] = field(default_factory=list)
    marker: str = ""    # Empty when this is the last page


__all__ = ["ObjectStat", "ListPage", "ObjectStore", "TokenMinter", "StaticTokenMinter"]


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for the backend operations surrounding the write path."""

    def stat(self, key: str) -> ObjectStat:
        """
        Get size and modification time of a stored object.

        Raises:
            NotFound: If no object is stored under key
            StoreError: For other backend or transport errors
        """
        ...

    def put(self, key: str, source: BinaryIO, length: int,
            mime_type: Optional[str] = None) -> None:
        """
        Replace the whole object under key with length bytes read from source.

        Raises:
            StoreError: If the upload fails
        """
        ...

    def open_range(self, key: str, offset: int = 0) -> Iterator[bytes]:
        """
        Stream the object's bytes from offset to its end.

        Raises:
            NotFound: If no object is stored under key
        """
        ...

    def list_page(self, prefix: str, delimiter: str = "/", marker: str = "",
                  limit: int = 1000) -> ListPage:
        """Return one page of keys and common prefixes under prefix."""
        ...

    def delete(self, key: str) -> None:
        """
        Delete a single object.

        Raises:
            NotFound: If no object is stored under key
        """
        ...

    def move(self, src: str, dst: str, *, force: bool = False) -> None:
        """
        Rename src to dst.

        Raises:
            NotFound: If src does not exist
            AlreadyExists: If dst exists and force is False
        """
        ...

    def url_for(self, key: str) -> str:
        """URL from which key can be downloaded."""
        ...


@runtime_checkable
class TokenMinter(Protocol):
    """Source of opaque credentials for the upload/compose endpoint."""

    def mint_upload_token(self, scope: str, expires: int, allowed_keys: Sequence[str]) -> str:
        """
        Mint an upload token.

        Args:
            scope: "<bucket>:<key>" the token may write
            expires: Token lifetime in seconds
            allowed_keys: Keys the upload may touch (copy sources included)
        """
        ...


class StaticTokenMinter:
    """Hands out one pre-minted token regardless of scope."""

    def __init__(self, token: str):
        if not token:
            raise ValueError("token must not be empty")
        self._token = token

    def mint_upload_token(self, scope: str, expires: int, allowed_keys: Sequence[str]) -> str:
        return self._token
