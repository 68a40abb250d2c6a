"""
Data model for level-based permission resolution.

Identifiers:
- Scope ids are guild snowflakes (int) or Scope.GLOBAL
- Subject ids are user / role snowflakes (int) or Subject.EVERYONE

Enum sentinels never compare equal to an int, so the "all guilds" and
"all users" markers cannot collide with real Discord ids.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, NamedTuple, Optional, Tuple, Union


class Scope(Enum):
    GLOBAL = "global"


class Subject(Enum):
    EVERYONE = "everyone"


GLOBAL = Scope.GLOBAL
EVERYONE = Subject.EVERYONE

ScopeId = Union[int, Scope]
SubjectId = Union[int, Subject]


class IndexKey(NamedTuple):
    scope: ScopeId
    subject: SubjectId


# ----------------------------------------------------------------------
# Unbounded level
# ----------------------------------------------------------------------

@functools.total_ordering
class UnboundedLevel:
    """
    Level reported for system administrators.

    Compares greater than every finite level and equal only to itself.
    Only ever produced at resolution time, never stored in an index.
    """

    _instance: Optional["UnboundedLevel"] = None

    def __new__(cls) -> "UnboundedLevel":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __eq__(self, other: object) -> bool:
        return other is self

    def __lt__(self, other: object) -> bool:
        if other is self or isinstance(other, (int, float)):
            return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash("guildlevels.unbounded")

    def __repr__(self) -> str:
        return "UNBOUNDED"

    def __str__(self) -> str:
        return "unbounded"


UNBOUNDED = UnboundedLevel()

Level = Union[int, UnboundedLevel]


# ----------------------------------------------------------------------
# Persisted definitions
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class PermissionLevelDefinition:
    """Normalized, read-only view of one persisted permission level."""

    scope_id: ScopeId
    level: int
    granted_native_permissions: FrozenSet[str] = frozenset()
    granted_system_permissions: FrozenSet[str] = frozenset()
    subject_user_ids: FrozenSet[SubjectId] = frozenset()
    subject_role_ids: FrozenSet[int] = frozenset()
    disabled: bool = False
    level_id: Optional[Any] = None
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.level, bool) or not isinstance(self.level, int):
            raise ValueError(f"level must be an integer, got {self.level!r}")
        if self.level < 0:
            raise ValueError(f"level must be non-negative, got {self.level}")

    @property
    def subjects(self) -> FrozenSet[SubjectId]:
        return self.subject_user_ids | self.subject_role_ids


# ----------------------------------------------------------------------
# Profiles
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class MergedProfile:
    level: int = 0
    granted_native_permissions: FrozenSet[str] = frozenset()
    granted_system_permissions: FrozenSet[str] = frozenset()

    @classmethod
    def from_definition(cls, definition: PermissionLevelDefinition) -> "MergedProfile":
        return cls(
            level=definition.level,
            granted_native_permissions=frozenset(definition.granted_native_permissions),
            granted_system_permissions=frozenset(definition.granted_system_permissions),
        )


EMPTY_PROFILE = MergedProfile()


@dataclass(frozen=True)
class PrincipalDescriptor:
    """
    A guild member as seen by the resolver.

    native_permissions is the permission set the platform has already
    resolved for the member (role inheritance included); it is ingested
    as-is and never recomputed here.
    """

    user_id: int
    guild_id: int
    role_ids: Tuple[int, ...] = ()
    native_permissions: FrozenSet[str] = frozenset()
    guild_owner_id: Optional[int] = None
    member: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        # ordered set: keep platform order, drop duplicates
        object.__setattr__(self, "role_ids", tuple(dict.fromkeys(self.role_ids)))
        object.__setattr__(self, "native_permissions", frozenset(self.native_permissions))

    @property
    def is_guild_owner(self) -> bool:
        return self.guild_owner_id is not None and self.guild_owner_id == self.user_id

    @classmethod
    def from_member(cls, member: Any) -> "PrincipalDescriptor":
        """Build a descriptor from a discord.Member."""
        guild = member.guild
        return cls(
            user_id=member.id,
            guild_id=guild.id,
            role_ids=tuple(role.id for role in member.roles),
            native_permissions=frozenset(
                name for name, enabled in member.guild_permissions if enabled
            ),
            guild_owner_id=getattr(guild, "owner_id", None),
            member=member,
        )


@dataclass(frozen=True)
class ResolutionResult:
    level: Level
    granted_native_permissions: FrozenSet[str] = frozenset()
    granted_system_permissions: FrozenSet[str] = frozenset()

    @property
    def is_unbounded(self) -> bool:
        return self.level is UNBOUNDED

    def has_system_permissions(self, names: Iterable[str]) -> bool:
        return set(names) <= self.granted_system_permissions

    def has_native_permissions(self, names: Iterable[str]) -> bool:
        return set(names) <= self.granted_native_permissions

    def as_dict(self) -> Dict[str, Any]:
        return {
            "level": str(self.level) if self.is_unbounded else self.level,
            "granted_native_permissions": sorted(self.granted_native_permissions),
            "granted_system_permissions": sorted(self.granted_system_permissions),
        }
