"""
Permission level stores backed by a JSON document or SQLite.

Both backends expose the same async contract:

    await store.load_enabled_level_definitions(scope=None) -> list[dict]

Rows are returned raw (normalization happens in the loader). Any failure to
reach or decode the backing store raises StoreUnavailableError; a load
never returns a partial result.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.config.permissions import LevelStoreConfig
from shared.logging.logger import get_logger
from services.discord.permissions.errors import StoreUnavailableError
from services.discord.permissions.models import GLOBAL, ScopeId

log = get_logger("permissions.store")

_LIST_COLUMNS = (
    "granted_discord_permissions",
    "granted_system_permissions",
    "users",
    "roles",
)

_GLOBAL_GUILD_IDS = {"0", "global"}


def _is_global_guild(value: Any) -> bool:
    return str(value).strip().lower() in _GLOBAL_GUILD_IDS


def _matches_scope(row: Dict[str, Any], scope: Optional[ScopeId]) -> bool:
    if scope is None:
        return True
    guild_id = row.get("guild_id")
    if _is_global_guild(guild_id):
        return True
    if scope is GLOBAL:
        return False
    return str(guild_id).strip() == str(scope)


class JsonLevelStore:
    """
    Level definitions kept in a JSON document:

    {
        "permission_levels": [
            {"id": 1, "guild_id": "global", "level": 10, "users": [...], ...}
        ]
    }
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> List[Dict[str, Any]]:
        if not self._path.exists():
            raise StoreUnavailableError(
                f"Level store not found: {self._path}", source=str(self._path)
            )

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreUnavailableError(
                f"Failed to read level store {self._path}: {exc}",
                source=str(self._path),
            ) from exc

        levels = payload.get("permission_levels") if isinstance(payload, dict) else None
        if not isinstance(levels, list):
            raise StoreUnavailableError(
                f"Level store {self._path} has no 'permission_levels' list",
                source=str(self._path),
            )

        return levels

    async def load_enabled_level_definitions(
        self,
        scope: Optional[ScopeId] = None,
    ) -> List[Dict[str, Any]]:
        rows = await asyncio.to_thread(self._read)

        enabled: List[Dict[str, Any]] = []
        for row in rows:
            if not isinstance(row, dict):
                log.warning(f"Skipping non-object level entry in {self._path}: {row!r}")
                continue
            if row.get("disabled", False) is True:
                continue
            if _matches_scope(row, scope):
                enabled.append(row)

        return enabled


class SqliteLevelStore:
    """Level definitions kept in the ``permission_levels`` SQLite table."""

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    # ------------------------------------------------------------------
    # SQLite setup
    # ------------------------------------------------------------------

    def _connect(self, *, read_only: bool = True) -> sqlite3.Connection:
        if read_only:
            conn = sqlite3.connect(f"file:{self._db_path.as_posix()}?mode=ro", uri=True)
        else:
            conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect(read_only=False)
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS permission_levels (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT,
                        guild_id TEXT NOT NULL,
                        level INTEGER NOT NULL DEFAULT 0,
                        granted_discord_permissions TEXT NOT NULL DEFAULT '[]',
                        granted_system_permissions TEXT NOT NULL DEFAULT '[]',
                        users TEXT NOT NULL DEFAULT '[]',
                        roles TEXT NOT NULL DEFAULT '[]',
                        everyone INTEGER NOT NULL DEFAULT 0,
                        disabled INTEGER NOT NULL DEFAULT 0
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_permission_levels_guild
                    ON permission_levels(guild_id)
                    """
                )
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    @staticmethod
    def _decode_row(row: sqlite3.Row) -> Dict[str, Any]:
        record = dict(row)
        for column in _LIST_COLUMNS:
            value = record.get(column)
            record[column] = json.loads(value) if value else []
        record["everyone"] = bool(record.get("everyone"))
        record["disabled"] = bool(record.get("disabled"))
        return record

    def _read(self, scope: Optional[ScopeId]) -> List[Dict[str, Any]]:
        if not self._db_path.exists():
            raise StoreUnavailableError(
                f"Level database not found: {self._db_path}", source=str(self._db_path)
            )

        query = "SELECT * FROM permission_levels WHERE disabled = 0"
        params: tuple = ()
        if scope is GLOBAL:
            query += " AND guild_id IN ('0', 'global')"
        elif scope is not None:
            query += " AND guild_id IN ('0', 'global', ?)"
            params = (str(scope),)
        query += " ORDER BY id"

        try:
            conn = self._connect()
            try:
                rows = conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(
                f"Failed to read level database {self._db_path}: {exc}",
                source=str(self._db_path),
            ) from exc

        records: List[Dict[str, Any]] = []
        for row in rows:
            try:
                records.append(self._decode_row(row))
            except ValueError as exc:
                log.warning(f"Skipping undecodable permission level {row['id']} in {self._db_path}: {exc}")
        return records

    async def load_enabled_level_definitions(
        self,
        scope: Optional[ScopeId] = None,
    ) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._read, scope)


def build_level_store(config: LevelStoreConfig):
    if config.backend == "sqlite":
        log.info(f"Using SQLite level store at {config.path}")
        return SqliteLevelStore(config.path)

    log.info(f"Using JSON level store at {config.path}")
    return JsonLevelStore(config.path)
