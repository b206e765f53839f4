"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and
backend clients, avoiding global state and enabling dependency injection.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .driver import StorageDriver
from .settings import Settings, create_settings_from_env
from .storage.base import ObjectStore, StaticTokenMinter, TokenMinter
from .storage.cache import CacheRefresher
from .storage.compose import ComposeClient
from .storage.kodo import KodoStore
from .writer import OffsetWriter


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Clients are created on first access and reused within one command.
    """
    settings: Settings
    tokens: TokenMinter
    _store: Optional[ObjectStore] = None
    _composer: Optional[ComposeClient] = None
    _driver: Optional[StorageDriver] = None

    @classmethod
    def from_env(cls, token: Optional[str] = None) -> CLIContext:
        """
        Create CLI context from environment variables.

        Args:
            token: Pre-minted upload token (defaults to OFFSETWRITE_UPLOAD_TOKEN)

        Raises:
            ValueError: If settings are invalid or no upload token is available
        """
        settings = create_settings_from_env()
        token = token or os.getenv("OFFSETWRITE_UPLOAD_TOKEN")
        if not token:
            raise ValueError("Upload token required: pass --token or set OFFSETWRITE_UPLOAD_TOKEN")
        return cls(settings=settings, tokens=StaticTokenMinter(token))

    @property
    def store(self) -> ObjectStore:
        if self._store is None:
            self._store = KodoStore(self.settings, self.tokens)
        return self._store

    @property
    def composer(self) -> ComposeClient:
        if self._composer is None:
            self._composer = ComposeClient(self.settings)
        return self._composer

    @property
    def driver(self) -> StorageDriver:
        if self._driver is None:
            writer = OffsetWriter(self.store, self.composer, self.tokens, self.settings)
            self._driver = StorageDriver(
                self.store, writer, self.settings, refresher=CacheRefresher(self.settings)
            )
        return self._driver
