"""
Discord Permissions Package (Level-Based)

Resolves a guild member's effective permission profile from persisted
permission levels, native Discord permissions and dynamic capabilities.

Importing this package MUST NOT load levels or touch the store; call
LevelResolver.boot() from the runtime entrypoint.
"""

from services.discord.permissions.authorization import (
    DiscordPermissionResolver,
    PermissionResult,
)
from services.discord.permissions.builtin import build_default_registry
from services.discord.permissions.cache import LevelSnapshotCache
from services.discord.permissions.capabilities import (
    SYSTEM_ADMIN,
    Capability,
    CapabilityRegistry,
)
from services.discord.permissions.errors import (
    CapabilityEvaluationFailure,
    PermissionsError,
    StoreUnavailableError,
    UninitializedResolverError,
    UnknownCapabilityWarning,
)
from services.discord.permissions.index import LevelIndex, build_index
from services.discord.permissions.loader import LevelStoreLoader
from services.discord.permissions.merge import merge_profiles
from services.discord.permissions.models import (
    EVERYONE,
    GLOBAL,
    UNBOUNDED,
    IndexKey,
    MergedProfile,
    PermissionLevelDefinition,
    PrincipalDescriptor,
    ResolutionResult,
)
from services.discord.permissions.resolver import LevelResolver, build_level_resolver
from services.discord.permissions.store import JsonLevelStore, SqliteLevelStore

__all__ = [
    "Capability",
    "CapabilityEvaluationFailure",
    "CapabilityRegistry",
    "DiscordPermissionResolver",
    "EVERYONE",
    "GLOBAL",
    "IndexKey",
    "JsonLevelStore",
    "LevelIndex",
    "LevelResolver",
    "LevelSnapshotCache",
    "LevelStoreLoader",
    "MergedProfile",
    "PermissionLevelDefinition",
    "PermissionResult",
    "PermissionsError",
    "PrincipalDescriptor",
    "ResolutionResult",
    "SYSTEM_ADMIN",
    "SqliteLevelStore",
    "StoreUnavailableError",
    "UNBOUNDED",
    "UninitializedResolverError",
    "UnknownCapabilityWarning",
    "build_default_registry",
    "build_index",
    "build_level_resolver",
    "merge_profiles",
]
