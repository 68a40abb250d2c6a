"""Built-in system capabilities registered at startup."""

from __future__ import annotations

from typing import Callable, Iterable, List

from shared.config.permissions import PermissionsConfig
from services.discord.permissions.capabilities import (
    SYSTEM_ADMIN,
    Capability,
    CapabilityRegistry,
)
from services.discord.permissions.models import PrincipalDescriptor

GUILD_OWNER = "guild_owner"
MANAGE_LEVELS = "manage_levels"


def _has_any_native(*flags: str) -> Callable[[PrincipalDescriptor], bool]:
    wanted = frozenset(flags)

    def predicate(principal: PrincipalDescriptor) -> bool:
        native = principal.native_permissions
        return "administrator" in native or bool(wanted & native)

    return predicate


def _is_guild_owner(principal: PrincipalDescriptor) -> bool:
    if principal.guild_owner_id is not None:
        return principal.is_guild_owner

    # descriptor built without owner info; fall back to the live guild
    member = principal.member
    guild = getattr(member, "guild", None) if member is not None else None
    owner_id = getattr(guild, "owner_id", None)
    return owner_id is not None and owner_id == principal.user_id


def default_capabilities(config: PermissionsConfig) -> List[Capability]:
    def is_system_admin(principal: PrincipalDescriptor) -> bool:
        return config.is_system_admin(principal.user_id)

    return [
        Capability(
            SYSTEM_ADMIN,
            is_system_admin,
            "Configured bot operator; resolves to the unbounded level",
        ),
        Capability(GUILD_OWNER, _is_guild_owner, "Owner of the guild"),
        Capability(
            MANAGE_LEVELS,
            _has_any_native("manage_guild"),
            "May change permission level definitions",
        ),
        Capability(
            "warn",
            _has_any_native("moderate_members", "kick_members", "ban_members"),
            "May issue warnings",
        ),
        Capability("mute", _has_any_native("moderate_members"), "May time out members"),
        Capability("kick", _has_any_native("kick_members"), "May kick members"),
        Capability("ban", _has_any_native("ban_members"), "May ban members"),
        Capability("purge", _has_any_native("manage_messages"), "May bulk delete messages"),
    ]


def build_default_registry(
    config: PermissionsConfig,
    extra: Iterable[Capability] = (),
) -> CapabilityRegistry:
    registry = CapabilityRegistry(default_capabilities(config))
    for capability in extra:
        registry.register(capability)
    return registry
