"""Tests for the level store hot reload watcher."""

import asyncio

import pytest

from shared.runtime.hot_reload import (
    HotReloadConfig,
    LevelStoreWatcher,
    build_hot_reload_watcher,
)
from shared.utils.hashing import stable_hash_for_paths


class ReloadRecorder:
    def __init__(self, result=True, error=None):
        self.calls = 0
        self.result = result
        self.error = error

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def levels_file(tmp_path):
    path = tmp_path / "permission_levels.json"
    path.write_text('{"permission_levels": []}', encoding="utf-8")
    return path


def test_hash_ignores_path_order(tmp_path, levels_file):
    other = tmp_path / "other.json"
    other.write_text("{}", encoding="utf-8")

    assert stable_hash_for_paths([levels_file, other]) == stable_hash_for_paths([other, levels_file])
    assert stable_hash_for_paths([tmp_path / "missing"]) is None


@pytest.mark.asyncio
async def test_check_once_reloads_on_change(levels_file):
    reload = ReloadRecorder()
    watcher = LevelStoreWatcher([levels_file], reload)
    watcher.prime()

    assert await watcher.check_once() is False

    levels_file.write_text('{"permission_levels": [{"id": 1}]}', encoding="utf-8")
    assert await watcher.check_once() is True
    assert await watcher.check_once() is False

    assert reload.calls == 1
    assert watcher.reload_count == 1


@pytest.mark.asyncio
async def test_first_check_without_prime_only_records_baseline(levels_file):
    reload = ReloadRecorder()
    watcher = LevelStoreWatcher([levels_file], reload)

    assert await watcher.check_once() is False
    assert reload.calls == 0


@pytest.mark.asyncio
async def test_failing_reload_callback_does_not_escape(levels_file, captured_logs):
    reload = ReloadRecorder(error=RuntimeError("boom"))
    watcher = LevelStoreWatcher([levels_file], reload)
    watcher.prime()

    levels_file.write_text("changed", encoding="utf-8")

    assert await watcher.check_once() is True
    assert "previous levels kept" in captured_logs.text


@pytest.mark.asyncio
async def test_run_stops_on_event(levels_file):
    watcher = LevelStoreWatcher([levels_file], ReloadRecorder(), interval_seconds=1)
    stop = asyncio.Event()
    stop.set()

    await asyncio.wait_for(watcher.run(stop), timeout=2)


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("GUILDLEVELS_HOT_RELOAD", "yes")
    monkeypatch.setenv("GUILDLEVELS_HOT_RELOAD_INTERVAL", "0.2")

    config = HotReloadConfig.from_env()

    assert config.enabled
    assert config.interval_seconds == 1.0


def test_config_ignores_bad_interval(monkeypatch):
    monkeypatch.delenv("GUILDLEVELS_HOT_RELOAD", raising=False)
    monkeypatch.setenv("GUILDLEVELS_HOT_RELOAD_INTERVAL", "soon")

    config = HotReloadConfig.from_env()

    assert not config.enabled
    assert config.interval_seconds == 5.0


def test_watcher_only_built_when_enabled(levels_file):
    reload = ReloadRecorder()

    assert build_hot_reload_watcher(HotReloadConfig(enabled=False), [levels_file], reload) is None

    watcher = build_hot_reload_watcher(
        HotReloadConfig(enabled=True, interval_seconds=3), [levels_file], reload
    )
    assert isinstance(watcher, LevelStoreWatcher)
    assert watcher.interval_seconds == 3.0
