"""
Level resolver.

Query-time entry point. For one guild member it gathers every index entry
that applies to them, folds those with the same merge used at build time,
adds the member's native Discord permissions and any dynamically granted
capabilities, and finally decides whether the member is a system admin
(unbounded level).

Resolution is total once the resolver has booted: a failing capability
predicate counts as "not granted" for that capability only.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from shared.config.permissions import PermissionsConfig
from shared.logging.logger import get_logger
from services.discord.logging import DiscordLogAdapter
from services.discord.permissions.builtin import build_default_registry
from services.discord.permissions.cache import LevelSnapshotCache
from services.discord.permissions.capabilities import Capability, CapabilityRegistry
from services.discord.permissions.errors import (
    CapabilityEvaluationFailure,
    StoreUnavailableError,
)
from services.discord.permissions.loader import LevelStoreLoader
from services.discord.permissions.merge import merge_profiles
from services.discord.permissions.models import (
    EVERYONE,
    GLOBAL,
    UNBOUNDED,
    IndexKey,
    Level,
    MergedProfile,
    PrincipalDescriptor,
    ResolutionResult,
)
from services.discord.permissions.store import build_level_store

log = get_logger("permissions.resolver", runtime="discord")


def lookup_keys(principal: PrincipalDescriptor) -> List[IndexKey]:
    """Index keys that apply to a member, in lookup order."""
    keys = [
        IndexKey(GLOBAL, EVERYONE),
        IndexKey(GLOBAL, principal.user_id),
        IndexKey(principal.guild_id, principal.user_id),
    ]
    keys.extend(IndexKey(principal.guild_id, role_id) for role_id in principal.role_ids)
    # every member holds @everyone, whose role id is the guild id
    if principal.guild_id not in principal.role_ids:
        keys.append(IndexKey(principal.guild_id, principal.guild_id))
    return keys


class LevelResolver:
    def __init__(
        self,
        cache: LevelSnapshotCache,
        registry: CapabilityRegistry,
        *,
        audit: Optional[DiscordLogAdapter] = None,
    ):
        self._cache = cache
        self._registry = registry
        self._audit = audit or DiscordLogAdapter()

    @property
    def cache(self) -> LevelSnapshotCache:
        return self._cache

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def audit(self) -> DiscordLogAdapter:
        return self._audit

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    async def boot(self) -> None:
        """
        Initial load. Failures propagate so the boot sequence can decide
        whether to retry or abort startup.
        """
        await self._cache.rebuild()
        self._audit.log_reload(success=True, generation=self._cache.generation)

    async def reload(self) -> bool:
        """
        Rebuild the level index from the store.

        Returns False when the store is unavailable; the previous snapshot
        stays authoritative in that case.
        """
        try:
            await self._cache.rebuild()
        except StoreUnavailableError as exc:
            self._audit.log_reload(
                success=False,
                generation=self._cache.generation,
                error=str(exc),
            )
            return False

        self._audit.log_reload(success=True, generation=self._cache.generation)
        return True

    # --------------------------------------------------
    # Capability evaluation
    # --------------------------------------------------

    async def _evaluate(self, capability: Capability, principal: PrincipalDescriptor) -> bool:
        try:
            return await capability.evaluate(principal)
        except Exception as exc:
            failure = CapabilityEvaluationFailure(
                capability.name, principal.user_id, principal.guild_id, exc
            )
            log.warning(f"{failure}; treating as not granted")
            return False

    async def _is_unbounded(self, profile: MergedProfile, principal: PrincipalDescriptor) -> bool:
        try:
            return await self._registry.is_unbounded_principal(profile, principal)
        except Exception as exc:
            failure = CapabilityEvaluationFailure(
                "<system admin>", principal.user_id, principal.guild_id, exc
            )
            log.warning(f"{failure}; treating as not a system admin")
            return False

    # --------------------------------------------------
    # Resolution
    # --------------------------------------------------

    async def resolve(self, principal: PrincipalDescriptor) -> ResolutionResult:
        # raises UninitializedResolverError before the first build
        index = self._cache.current()

        merged = merge_profiles(*(index.get(key) for key in lookup_keys(principal)))
        native = merged.granted_native_permissions | principal.native_permissions
        system = set(merged.granted_system_permissions)

        pending = [
            capability
            for capability in self._registry.list_capabilities()
            if capability.name not in system
        ]
        granted = await asyncio.gather(
            *(self._evaluate(capability, principal) for capability in pending)
        )
        system.update(
            capability.name for capability, ok in zip(pending, granted) if ok
        )

        working = MergedProfile(
            level=merged.level,
            granted_native_permissions=native,
            granted_system_permissions=frozenset(system),
        )

        level: Level = merged.level
        if await self._is_unbounded(working, principal):
            level = UNBOUNDED

        return ResolutionResult(
            level=level,
            granted_native_permissions=working.granted_native_permissions,
            granted_system_permissions=working.granted_system_permissions,
        )

    async def level_of(self, principal: PrincipalDescriptor) -> Level:
        result = await self.resolve(principal)
        return result.level

    async def has_system_permissions(self, principal: PrincipalDescriptor, *names: str) -> bool:
        result = await self.resolve(principal)
        return result.has_system_permissions(names)

    async def can_moderate(
        self,
        moderator: PrincipalDescriptor,
        target: PrincipalDescriptor,
    ) -> bool:
        """
        Whether moderator may take disciplinary action against target.

        Nobody moderates themselves or the guild owner; the owner may
        moderate anyone else; otherwise the moderator's level must be
        strictly higher.
        """
        if moderator.user_id == target.user_id:
            return False
        if target.is_guild_owner:
            return False
        if moderator.is_guild_owner:
            return True

        moderator_level, target_level = await asyncio.gather(
            self.level_of(moderator),
            self.level_of(target),
        )
        return moderator_level > target_level


def build_level_resolver(
    config: PermissionsConfig,
    *,
    registry: Optional[CapabilityRegistry] = None,
    audit: Optional[DiscordLogAdapter] = None,
) -> LevelResolver:
    """Wire store, loader, cache and capability registry from configuration."""
    registry = registry or build_default_registry(config)
    loader = LevelStoreLoader(build_level_store(config.store), registry)
    return LevelResolver(LevelSnapshotCache(loader), registry, audit=audit)
