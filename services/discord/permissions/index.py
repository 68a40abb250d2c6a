"""
Level index.

Definitions are expanded into one entry per (scope, subject) pair. When
several definitions target the same pair they are folded together here,
at build time, so a lookup at resolution time is a single dict access.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Optional

from services.discord.permissions.merge import merge_profiles
from services.discord.permissions.models import (
    IndexKey,
    MergedProfile,
    PermissionLevelDefinition,
    Scope,
    ScopeId,
    SubjectId,
)


class LevelIndex(Mapping):
    """Immutable mapping of IndexKey -> MergedProfile."""

    def __init__(
        self,
        entries: Optional[Dict[IndexKey, MergedProfile]] = None,
        *,
        definition_count: int = 0,
        built_at: Optional[datetime] = None,
    ) -> None:
        self._entries = MappingProxyType(dict(entries or {}))
        self._definition_count = definition_count
        self._built_at = built_at or datetime.now(timezone.utc)

    def __getitem__(self, key: IndexKey) -> MergedProfile:
        return self._entries[key]

    def __iter__(self) -> Iterator[IndexKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, scope: ScopeId, subject: SubjectId) -> Optional[MergedProfile]:
        return self._entries.get(IndexKey(scope, subject))

    @property
    def definition_count(self) -> int:
        return self._definition_count

    @property
    def built_at(self) -> datetime:
        return self._built_at

    def snapshot(self) -> Dict[str, Any]:
        """Summary of the index for diagnostics."""
        guilds = {key.scope for key in self._entries if not isinstance(key.scope, Scope)}
        return {
            "entries": len(self._entries),
            "definitions": self._definition_count,
            "guilds": len(guilds),
            "global_entries": sum(1 for key in self._entries if isinstance(key.scope, Scope)),
            "built_at": self._built_at.isoformat(),
        }


def build_index(definitions: Iterable[PermissionLevelDefinition]) -> LevelIndex:
    """
    Build a fresh index from definitions.

    Disabled definitions are ignored and definitions without subjects add
    nothing. Processing order does not affect the result.
    """
    entries: Dict[IndexKey, MergedProfile] = {}
    count = 0

    for definition in definitions:
        if definition.disabled:
            continue

        count += 1
        profile = MergedProfile.from_definition(definition)

        for subject in definition.subjects:
            key = IndexKey(definition.scope_id, subject)
            existing = entries.get(key)
            entries[key] = profile if existing is None else merge_profiles(existing, profile)

    return LevelIndex(entries, definition_count=count)
