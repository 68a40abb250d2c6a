"""
Permission runtime configuration loader.

Design rules:
- Import-safe (no side effects)
- Invalid values fall back to defaults with a warning
- Environment variables override file values
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from shared.logging.logger import get_logger

log = get_logger("shared.config.permissions")

_CONFIG_PATH = Path(__file__).parent / "permissions.json"

LEVEL_STORE_BACKENDS = ("json", "sqlite")

_DEFAULT_STORE_PATHS: Dict[str, str] = {
    "json": "shared/config/permission_levels.json",
    "sqlite": "data/guildlevels.db",
}


@dataclass
class LevelStoreConfig:
    backend: str = "json"
    path: str = _DEFAULT_STORE_PATHS["json"]


@dataclass
class PermissionsConfig:
    store: LevelStoreConfig = field(default_factory=LevelStoreConfig)
    system_admins: Tuple[int, ...] = ()

    def is_system_admin(self, user_id: Any) -> bool:
        normalized = normalize_snowflake(user_id)
        return normalized is not None and normalized in self.system_admins


# ----------------------------------------------------------------------
# Normalization helpers
# ----------------------------------------------------------------------

def normalize_snowflake(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit() and int(raw) > 0:
            return int(raw)
    return None


def _normalize_admin_list(raw: Any) -> Tuple[int, ...]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, (list, tuple)):
        return ()
    admins: list[int] = []
    for entry in raw:
        admin_id = normalize_snowflake(entry)
        if admin_id is None:
            if str(entry).strip():
                log.warning(f"Ignoring invalid system admin id: {entry!r}")
            continue
        if admin_id not in admins:
            admins.append(admin_id)
    return tuple(admins)


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.info(f"permissions.json not found at {path}; using defaults")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, ValueError) as e:
        log.warning(f"Failed to load permissions.json ({e}); using defaults")
        return {}


def _load_store_config(raw: Any) -> LevelStoreConfig:
    if not isinstance(raw, dict):
        return LevelStoreConfig()

    backend = raw.get("backend", "json")
    if backend not in LEVEL_STORE_BACKENDS:
        log.warning(
            f"Unknown level store backend {backend!r}; "
            f"expected one of {LEVEL_STORE_BACKENDS}, defaulting to json"
        )
        backend = "json"

    path = raw.get("path")
    if not isinstance(path, str) or not path.strip():
        path = _DEFAULT_STORE_PATHS[backend]

    return LevelStoreConfig(backend=backend, path=path.strip())


def _apply_env_overrides(
    config: PermissionsConfig,
    environ: Optional[Dict[str, str]] = None,
) -> PermissionsConfig:
    env = os.environ if environ is None else environ

    backend_override = env.get("GUILDLEVELS_LEVEL_STORE")
    if backend_override:
        backend = backend_override.strip().lower()
        if backend in LEVEL_STORE_BACKENDS:
            if backend != config.store.backend:
                config.store = LevelStoreConfig(
                    backend=backend,
                    path=_DEFAULT_STORE_PATHS[backend],
                )
        else:
            log.warning(
                f"Invalid GUILDLEVELS_LEVEL_STORE={backend_override}; "
                f"keeping {config.store.backend}"
            )

    path_override = env.get("GUILDLEVELS_LEVEL_STORE_PATH")
    if path_override:
        config.store.path = path_override.strip()

    admins_override = env.get("GUILDLEVELS_SYSTEM_ADMINS")
    if admins_override is not None:
        config.system_admins = _normalize_admin_list(admins_override)

    return config


def load_permissions_config(
    raw: Optional[Dict[str, Any]] = None,
    *,
    path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> PermissionsConfig:
    """
    Build the permission runtime configuration.

    Shape of permissions.json:
    {
        "level_store": {"backend": "json" | "sqlite", "path": "..."},
        "system_admins": ["123456789012345678", ...]
    }
    """
    raw = raw if raw is not None else _load_json(path or _CONFIG_PATH)

    config = PermissionsConfig(
        store=_load_store_config(raw.get("level_store")),
        system_admins=_normalize_admin_list(raw.get("system_admins", [])),
    )
    return _apply_env_overrides(config, environ)


def store_watch_paths(config: PermissionsConfig) -> Iterable[Path]:
    """Files whose content changes should trigger a level reload."""
    base = Path(config.store.path)
    if config.store.backend == "sqlite":
        return [base, base.with_name(base.name + "-wal")]
    return [base]
