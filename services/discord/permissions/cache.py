"""
Level snapshot cache.

Holds the active LevelIndex. A rebuild loads and indexes everything off to
the side and installs the result with a single reference assignment, so
readers never see a half-built index and never wait on a rebuild.
Rebuilds themselves are serialized.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from shared.logging.logger import get_logger
from services.discord.permissions.errors import UninitializedResolverError
from services.discord.permissions.index import LevelIndex, build_index
from services.discord.permissions.loader import LevelStoreLoader

log = get_logger("permissions.cache")


class LevelSnapshotCache:
    def __init__(self, loader: LevelStoreLoader):
        self._loader = loader
        self._snapshot: Optional[LevelIndex] = None
        self._rebuild_lock = asyncio.Lock()
        self._generation = 0
        self._last_error: Optional[str] = None

    @property
    def loader(self) -> LevelStoreLoader:
        return self._loader

    @property
    def ready(self) -> bool:
        return self._snapshot is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def rebuilding(self) -> bool:
        return self._rebuild_lock.locked()

    def current(self) -> LevelIndex:
        snapshot = self._snapshot
        if snapshot is None:
            raise UninitializedResolverError(
                "Permission levels have not been loaded; call boot() before resolving"
            )
        return snapshot

    async def rebuild(self) -> LevelIndex:
        """
        Load, index and install a new snapshot.

        On failure the previous snapshot stays installed and the error is
        re-raised to the caller.
        """
        async with self._rebuild_lock:
            try:
                definitions = await self._loader.load()
                index = build_index(definitions)
            except Exception as exc:
                self._last_error = str(exc)
                log.error(
                    f"Permission level rebuild failed; keeping generation "
                    f"{self._generation}: {exc}"
                )
                raise

            self._snapshot = index
            self._generation += 1
            self._last_error = None

            log.info(
                f"Loaded {len(index)} permission level entries "
                f"from {index.definition_count} definition(s) "
                f"(generation {self._generation})"
            )
            return index

    def snapshot(self) -> Dict[str, Any]:
        """Structured cache state for admin / diagnostic surfaces."""
        return {
            "ready": self.ready,
            "generation": self._generation,
            "rebuilding": self.rebuilding,
            "last_error": self._last_error,
            "index": self._snapshot.snapshot() if self._snapshot is not None else None,
        }
