"""Tests for permission runtime configuration."""

import json
from pathlib import Path

from shared.config.permissions import (
    LevelStoreConfig,
    PermissionsConfig,
    load_permissions_config,
    normalize_snowflake,
    store_watch_paths,
)


def test_defaults_without_file(tmp_path):
    config = load_permissions_config(path=tmp_path / "missing.json", environ={})

    assert config.store == LevelStoreConfig()
    assert config.system_admins == ()


def test_file_values_are_loaded(tmp_path):
    path = tmp_path / "permissions.json"
    path.write_text(
        json.dumps({
            "level_store": {"backend": "sqlite", "path": "var/levels.db"},
            "system_admins": ["42", 43, "bogus", 42],
        }),
        encoding="utf-8",
    )

    config = load_permissions_config(path=path, environ={})

    assert config.store == LevelStoreConfig(backend="sqlite", path="var/levels.db")
    assert config.system_admins == (42, 43)
    assert config.is_system_admin("42")
    assert not config.is_system_admin(44)


def test_invalid_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "permissions.json"
    path.write_text("[broken", encoding="utf-8")

    assert load_permissions_config(path=path, environ={}) == PermissionsConfig()


def test_unknown_backend_defaults_to_json():
    config = load_permissions_config({"level_store": {"backend": "redis"}}, environ={})

    assert config.store.backend == "json"
    assert config.store.path == "shared/config/permission_levels.json"


def test_sqlite_backend_gets_default_path():
    config = load_permissions_config({"level_store": {"backend": "sqlite"}}, environ={})

    assert config.store.path == "data/guildlevels.db"


def test_environment_overrides_file_values():
    config = load_permissions_config(
        {"level_store": {"backend": "json", "path": "a.json"}, "system_admins": [1]},
        environ={
            "GUILDLEVELS_LEVEL_STORE": "SQLite",
            "GUILDLEVELS_LEVEL_STORE_PATH": "/srv/levels.db",
            "GUILDLEVELS_SYSTEM_ADMINS": "7, 8,,x",
        },
    )

    assert config.store == LevelStoreConfig(backend="sqlite", path="/srv/levels.db")
    assert config.system_admins == (7, 8)


def test_invalid_backend_override_is_ignored():
    config = load_permissions_config(
        {"level_store": {"backend": "json", "path": "a.json"}},
        environ={"GUILDLEVELS_LEVEL_STORE": "postgres"},
    )

    assert config.store == LevelStoreConfig(backend="json", path="a.json")


def test_normalize_snowflake():
    assert normalize_snowflake("123") == 123
    assert normalize_snowflake(5) == 5
    assert normalize_snowflake(0) is None
    assert normalize_snowflake(True) is None
    assert normalize_snowflake("12a") is None


def test_store_watch_paths():
    json_config = PermissionsConfig(store=LevelStoreConfig(backend="json", path="levels.json"))
    sqlite_config = PermissionsConfig(store=LevelStoreConfig(backend="sqlite", path="data/l.db"))

    assert list(store_watch_paths(json_config)) == [Path("levels.json")]
    assert list(store_watch_paths(sqlite_config)) == [Path("data/l.db"), Path("data/l.db-wal")]
