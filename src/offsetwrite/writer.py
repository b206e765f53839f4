"""
Offset write facade.

Implements write_at_offset() on top of a store that can only replace whole
objects or compose new ones from parts:

    Staging -> Planning -> Composing -> Done
       \\          \\            \\
        `----------`------------`--> Failed

Staging copies the caller's stream into a re-readable buffer while the
current object size is probed. Planning turns (size, offset, staged length)
into a part manifest. Composing checksums and streams it to the backend, or
uploads the whole object when nothing is stored under the key yet.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import BinaryIO, Dict, Iterable, Mapping, Optional

from .manifest import PartManifest
from .planner import plan_offset_write
from .settings import Settings
from .staging import ConcatReader, StagingBuffer, ZeroFill
from .storage.base import ObjectStat, ObjectStore, TokenMinter
from .storage.compose import ComposeClient
from .storage.errors import NotFound

__all__ = ["OffsetWriter", "WriteState"]

logger = logging.getLogger(__name__)


class WriteState(str, Enum):
    """States of one write_at_offset() call."""
    STAGING = "staging"
    PLANNING = "planning"
    COMPOSING = "composing"
    DONE = "done"
    FAILED = "failed"


class OffsetWriter:
    """
    Arbitrary-offset writes against a compose-only object store.

    Stateless between calls: each call owns its staging buffer, and the
    injected clients carry no call-specific state, so one writer may serve
    concurrent calls. Concurrent writes to the same key are not serialized;
    the last compose to land wins.
    """

    def __init__(self, store: ObjectStore, composer: ComposeClient, tokens: TokenMinter,
                 settings: Settings):
        """
        Initialize writer.

        Args:
            store: Backend client used to probe sizes and for whole-object PUTs
            composer: Client for compose requests
            tokens: Upload token source
            settings: Bucket, staging and checksum configuration
        """
        self.store = store
        self.composer = composer
        self.tokens = tokens
        self.settings = settings

    def write_at_offset(self, key: str, offset: int, source: BinaryIO | Iterable[bytes], *,
                        mime_type: Optional[str] = None,
                        params: Optional[Mapping[str, str]] = None) -> int:
        """
        Write the caller's stream into key starting at offset.

        Bytes before offset are kept (zero-filled past the current end),
        bytes after the written range survive.

        Args:
            key: Target key
            offset: Write start position (>= 0)
            source: File-like or iterable of byte chunks, read to exhaustion
            mime_type: Content type of the resulting object
            params: Opaque metadata fields sent with the upload

        Returns:
            Number of bytes read from source

        Raises:
            ValueError: If offset is negative
            ReadFailure: If the source cannot be read
            StoreError: Any probe, checksum, transport or backend failure
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")

        mime_type = mime_type or self.settings.mime_type
        state = WriteState.STAGING

        with StagingBuffer(self.settings.spool_max_bytes, self.settings.staging_dir) as staging:
            try:
                with ThreadPoolExecutor(max_workers=1) as pool:
                    probe = pool.submit(self._probe, key)
                    staged = staging.stage(source)
                    current = probe.result()

                state = self._advance(key, state, WriteState.PLANNING)
                manifest = plan_offset_write(
                    key,
                    current.size if current else 0,
                    offset,
                    staged,
                    exists=current is not None,
                    mime_type=mime_type,
                    check_crc=self.settings.check_crc,
                )

                state = self._advance(key, state, WriteState.COMPOSING)
                sources = self._bind_sources(manifest, staging)
                if manifest.requires_compose:
                    token = self.tokens.mint_upload_token(
                        f"{self.settings.bucket}:{key}", self.settings.token_expiry_s, [key]
                    )
                    self.composer.compose(token, key, manifest, sources, params=params)
                else:
                    length = manifest.resolved_size(0)
                    ordered = [sources[p.index] for p in manifest.direct_parts()]
                    self.store.put(key, ConcatReader(ordered), length, mime_type)

                self._advance(key, state, WriteState.DONE)
                return staged
            except Exception:
                self._advance(key, state, WriteState.FAILED)
                raise

    def _probe(self, key: str) -> Optional[ObjectStat]:
        """Current object metadata, or None when nothing is stored under key."""
        try:
            return self.store.stat(key)
        except NotFound:
            return None

    @staticmethod
    def _bind_sources(manifest: PartManifest, staging: StagingBuffer) -> Dict[int, BinaryIO]:
        """Byte source per direct part: zeros for gap fillers, the staged payload otherwise."""
        sources: Dict[int, BinaryIO] = {}
        for part in manifest.direct_parts():
            sources[part.index] = ZeroFill(part.length) if part.zero_fill else staging.rewind()
        return sources

    @staticmethod
    def _advance(key: str, current: WriteState, target: WriteState) -> WriteState:
        logger.debug(f"write {key!r}: {current.value} -> {target.value}")
        return target
