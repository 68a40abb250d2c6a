"""File-backed hot reload watcher for permission level stores."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional

from shared.logging.logger import get_logger
from shared.utils.hashing import stable_hash_for_paths

log = get_logger("runtime.hot_reload")

ReloadCallback = Callable[[], Awaitable[bool]]


@dataclass
class HotReloadConfig:
    enabled: bool = False
    interval_seconds: float = 5.0

    @classmethod
    def from_env(cls, *, base: Optional["HotReloadConfig"] = None) -> "HotReloadConfig":
        cfg = base or cls()
        override_flag = os.getenv("GUILDLEVELS_HOT_RELOAD")
        if override_flag is not None:
            cfg.enabled = override_flag.lower() in {"1", "true", "yes", "on"}

        interval_override = os.getenv("GUILDLEVELS_HOT_RELOAD_INTERVAL")
        if interval_override:
            try:
                cfg.interval_seconds = float(interval_override)
            except ValueError:
                log.warning(
                    "Invalid GUILDLEVELS_HOT_RELOAD_INTERVAL=%s; using %s",
                    interval_override,
                    cfg.interval_seconds,
                )

        cfg.interval_seconds = max(1.0, float(cfg.interval_seconds or 5.0))
        return cfg


class LevelStoreWatcher:
    """
    Polls the files behind a level store and triggers a reload whenever
    their content hash changes.
    """

    def __init__(
        self,
        paths: Iterable[Path | str],
        on_change: ReloadCallback,
        *,
        interval_seconds: float = 5.0,
    ) -> None:
        self.paths: List[Path] = [Path(p) for p in paths]
        self.interval_seconds = max(1.0, float(interval_seconds or 5.0))
        self._on_change = on_change
        self._running = False
        self._last_hash: Optional[str] = None
        self.reload_count = 0

    def prime(self) -> None:
        """Record the current content as the baseline."""
        self._last_hash = stable_hash_for_paths(self.paths)

    async def check_once(self) -> bool:
        """
        Poll once. Returns True when a change was detected and a reload
        was attempted.
        """
        new_hash = stable_hash_for_paths(self.paths)
        if new_hash is None:
            return False

        if self._last_hash is None:
            self._last_hash = new_hash
            return False

        if new_hash == self._last_hash:
            return False

        log.info(f"Detected level store changes under {[str(p) for p in self.paths]}")
        self._last_hash = new_hash
        self.reload_count += 1

        try:
            ok = await self._on_change()
        except Exception as exc:
            log.error(f"Level reload after file change raised: {exc}")
            ok = False

        if not ok:
            log.warning("Level reload after file change failed; previous levels kept")
        return True

    async def run(self, stop_event: asyncio.Event) -> None:
        if self._running:
            log.warning("Hot reload watcher already running; ignoring duplicate start")
            return

        self._running = True
        log.info(f"Hot reload watcher started for {[str(p) for p in self.paths]}")

        try:
            if self._last_hash is None:
                self.prime()
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass

                if stop_event.is_set():
                    break

                await self.check_once()

        finally:
            self._running = False
            log.info("Hot reload watcher stopped")


def build_hot_reload_watcher(
    config: HotReloadConfig,
    paths: Iterable[Path | str],
    on_change: ReloadCallback,
) -> Optional[LevelStoreWatcher]:
    if not config.enabled:
        return None
    return LevelStoreWatcher(
        paths,
        on_change,
        interval_seconds=config.interval_seconds,
    )


__all__ = [
    "LevelStoreWatcher",
    "HotReloadConfig",
    "build_hot_reload_watcher",
]
