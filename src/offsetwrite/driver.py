"""
Filesystem-style storage driver.

One concrete type exposing content get/put, ranged reads, offset writes,
stat, listing, move and recursive delete over a flat key space. Directories
are emulated from key prefixes: a path is a directory when it is not a key
itself but other keys live under "<path>/".
"""
from __future__ import annotations

import io
import logging
from typing import BinaryIO, Iterable, Iterator, List, Optional, Set

from .settings import Settings
from .storage.base import ObjectStat, ObjectStore
from .storage.cache import CacheRefresher
from .storage.errors import AlreadyExists, DeleteIncomplete, NotFound, StoreError
from .writer import OffsetWriter

__all__ = ["StorageDriver"]

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100


class StorageDriver:
    """
    Storage driver backed by a compose-capable object store.

    Mutations (put, write, move, delete) drop the cache entry of every key
    they touch once they succeed.
    """

    def __init__(self, store: ObjectStore, writer: OffsetWriter, settings: Settings, *,
                 refresher: Optional[CacheRefresher] = None):
        self.store = store
        self.writer = writer
        self.settings = settings
        self.refresher = refresher

    def get_content(self, path: str) -> bytes:
        """Whole content stored at path."""
        return b"".join(self.read_stream(path, 0))

    def put_content(self, path: str, contents: bytes) -> None:
        """Replace the object at path with contents."""
        self.store.put(path, io.BytesIO(contents), len(contents), self.settings.mime_type)
        self._refresh(path)

    def read_stream(self, path: str, offset: int = 0) -> Iterator[bytes]:
        """
        Stream the object at path from offset.

        Raises:
            NotFound: If path does not exist
            ValueError: If offset is negative
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        stat = self.stat(path)
        if stat.is_dir:
            raise NotFound(path)
        if offset >= stat.size:
            return iter(())
        return self.store.open_range(path, offset)

    def write_stream(self, path: str, offset: int, reader: BinaryIO | Iterable[bytes], *,
                     mime_type: Optional[str] = None) -> int:
        """
        Write reader's bytes into path at offset; see OffsetWriter.write_at_offset.

        Returns:
            Number of bytes read from reader
        """
        written = self.writer.write_at_offset(path, offset, reader, mime_type=mime_type)
        self._refresh(path)
        return written

    def stat(self, path: str) -> ObjectStat:
        """
        Metadata of path, which may be an object or an emulated directory.

        Raises:
            NotFound: If path is neither a key nor a prefix of one
        """
        try:
            return self.store.stat(path)
        except NotFound:
            if not self.list(path):
                raise
            return ObjectStat(key=path, size=0, is_dir=True)

    def list(self, path: str) -> List[str]:
        """
        Direct descendants of path: keys, then sub-directories without the
        trailing slash. Every page is fetched.
        """
        prefix = path if path.endswith("/") else path + "/"
        keys: List[str] = []
        folders: List[str] = []
        marker = ""
        while True:
            page = self.store.list_page(prefix, "/", marker, LIST_PAGE_SIZE)
            keys.extend(item.key for item in page.items)
            folders.extend(page.common_prefixes)
            marker = page.marker
            if not marker:
                break

        for folder in folders:
            keys.append(folder if folder == "/" else folder.rstrip("/"))
        return keys

    def move(self, src: str, dst: str) -> None:
        """
        Rename src to dst, replacing dst if it exists.

        Raises:
            NotFound: If src does not exist
        """
        self.stat(src)
        try:
            self.store.move(src, dst)
        except AlreadyExists:
            logger.debug(f"{dst} exists, overwriting with {src}")
            self.store.move(src, dst, force=True)
        self._refresh(src)
        self._refresh(dst)

    def delete(self, path: str) -> None:
        """
        Delete path and everything under it.

        Best effort: every key is attempted and the ones that could not be
        deleted are reported together.

        Raises:
            NotFound: If path does not exist
            DeleteIncomplete: If any key could not be deleted
        """
        failed = self._delete(path)
        if failed:
            raise DeleteIncomplete(failed)

    def url_for(self, path: str) -> str:
        """URL from which the content at path can be downloaded."""
        return self.store.url_for(path)

    def _delete(self, path: str) -> Set[str]:
        stat = self.stat(path)
        if not stat.is_dir:
            self.store.delete(path)
            self._refresh(path)
            return set()

        failed: Set[str] = set()
        # Explicit stack instead of recursion for deep trees
        pending = [path]
        while pending:
            current = pending.pop()
            for child in self.list(current):
                try:
                    child_stat = self.stat(child)
                except StoreError as e:
                    logger.debug(f"Failed to stat {child}: {e}")
                    failed.add(child)
                    continue
                if child_stat.is_dir:
                    pending.append(child)
                    continue
                try:
                    self.store.delete(child)
                except StoreError as e:
                    logger.debug(f"Failed to delete {child}: {e}")
                    failed.add(child)
                    continue
                self._refresh(child)
        return failed

    def _refresh(self, path: str) -> None:
        if self.refresher is not None:
            self.refresher.refresh(path)
