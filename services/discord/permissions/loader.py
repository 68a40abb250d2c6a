"""
Level store loader.

Reads enabled permission level records from a store and converts them into
PermissionLevelDefinition objects. Stale or malformed configuration never
blocks boot: unknown capability names, unknown Discord flags and malformed
records are dropped with a warning. Only store-level failures propagate.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from shared.logging.logger import get_logger
from services.discord.permissions.capabilities import CapabilityRegistry
from services.discord.permissions.errors import UnknownCapabilityWarning
from services.discord.permissions.flags import normalize_native_permission
from services.discord.permissions.models import (
    EVERYONE,
    GLOBAL,
    PermissionLevelDefinition,
    ScopeId,
    SubjectId,
)

log = get_logger("permissions.loader")


class MalformedLevelError(ValueError):
    """A single level record cannot be normalized."""


# ----------------------------------------------------------------------
# Field parsing
# ----------------------------------------------------------------------

def _parse_snowflake(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return int(raw)
    return None


def parse_scope(value: Any) -> ScopeId:
    if isinstance(value, str) and value.strip().lower() == "global":
        return GLOBAL

    snowflake = _parse_snowflake(value)
    if snowflake is None:
        raise MalformedLevelError(f"invalid guild_id {value!r}")
    # legacy records used guild id 0 for "every guild"
    return GLOBAL if snowflake == 0 else snowflake


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _parse_ids(raw: Any, field_name: str) -> List[Any]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple, set, frozenset)):
        raise MalformedLevelError(f"'{field_name}' must be a list")
    return list(raw)


def _parse_level(raw: Any) -> int:
    if isinstance(raw, bool):
        raise MalformedLevelError(f"invalid level {raw!r}")
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    if isinstance(raw, int) and raw >= 0:
        return raw
    raise MalformedLevelError(f"invalid level {raw!r}")


class LevelStoreLoader:
    """Loads and normalizes permission level definitions from a store."""

    def __init__(self, store: Any, registry: CapabilityRegistry):
        self._store = store
        self._registry = registry

    @property
    def store(self) -> Any:
        return self._store

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _system_permissions(self, raw: Iterable[Any], level_id: Any) -> FrozenSet[str]:
        granted: Set[str] = set()
        for name in raw:
            resolved = self._registry.resolve_name(name)
            if resolved is None:
                log.warning(str(UnknownCapabilityWarning(str(name), level_id)))
                continue
            granted.add(resolved)
        return frozenset(granted)

    @staticmethod
    def _native_permissions(raw: Iterable[Any], level_id: Any) -> FrozenSet[str]:
        granted: Set[str] = set()
        for name in raw:
            flag = normalize_native_permission(name)
            if flag is None:
                log.warning(f"Discord permission {name} does not exist (level {level_id}); dropped")
                continue
            granted.add(flag)
        return frozenset(granted)

    @staticmethod
    def _subjects(
        scope: ScopeId,
        users: Iterable[Any],
        roles: Iterable[Any],
        everyone: bool,
        level_id: Any,
    ) -> tuple[FrozenSet[SubjectId], FrozenSet[int]]:
        user_ids: Set[SubjectId] = set()
        role_ids: Set[int] = set()

        for raw in users:
            if isinstance(raw, str) and raw.strip().lower() == "everyone":
                everyone = True
                continue
            snowflake = _parse_snowflake(raw)
            if snowflake is None:
                log.warning(f"Ignoring invalid user id {raw!r} (level {level_id})")
            elif snowflake == 0:
                # legacy "0" user under the global scope means everyone
                if scope is GLOBAL:
                    user_ids.add(EVERYONE)
                else:
                    log.warning(f"Ignoring user id 0 outside the global scope (level {level_id})")
            else:
                user_ids.add(snowflake)

        for raw in roles:
            snowflake = _parse_snowflake(raw)
            if snowflake is None or snowflake == 0:
                log.warning(f"Ignoring invalid role id {raw!r} (level {level_id})")
                continue
            role_ids.add(snowflake)

        if everyone:
            if scope is GLOBAL:
                user_ids.add(EVERYONE)
            else:
                # inside a guild, everyone holds the @everyone role (id == guild id)
                role_ids.add(scope)

        return frozenset(user_ids), frozenset(role_ids)

    def normalize(self, record: Dict[str, Any]) -> PermissionLevelDefinition:
        """Convert one raw store record; raises MalformedLevelError."""
        level_id = record.get("id")
        scope = parse_scope(record.get("guild_id"))
        level = _parse_level(record.get("level", 0))

        user_ids, role_ids = self._subjects(
            scope,
            _parse_ids(record.get("users"), "users"),
            _parse_ids(record.get("roles"), "roles"),
            _parse_bool(record.get("everyone", False)),
            level_id,
        )

        return PermissionLevelDefinition(
            scope_id=scope,
            level=level,
            granted_native_permissions=self._native_permissions(
                _parse_ids(record.get("granted_discord_permissions"), "granted_discord_permissions"),
                level_id,
            ),
            granted_system_permissions=self._system_permissions(
                _parse_ids(record.get("granted_system_permissions"), "granted_system_permissions"),
                level_id,
            ),
            subject_user_ids=user_ids,
            subject_role_ids=role_ids,
            disabled=_parse_bool(record.get("disabled", False)),
            level_id=level_id,
            name=record.get("name"),
        )

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self, scope: Optional[ScopeId] = None) -> List[PermissionLevelDefinition]:
        """
        Load every enabled definition.

        StoreUnavailableError from the store propagates unchanged; nothing
        is returned unless the whole read succeeded.
        """
        records = await self._store.load_enabled_level_definitions(scope)

        definitions: List[PermissionLevelDefinition] = []
        for record in records:
            level_id = record.get("id") if isinstance(record, dict) else None
            try:
                definition = self.normalize(record)
            except (ValueError, AttributeError) as exc:
                log.warning(f"Skipping malformed permission level {level_id}: {exc}")
                continue

            if definition.disabled:
                continue

            if not definition.subjects:
                log.debug(f"Permission level {level_id} has no users or roles")

            definitions.append(definition)

        log.info(f"Loaded {len(definitions)} permission level definition(s)")
        return definitions
