"""
Discord authorization checks.

Call-site helpers built on LevelResolver so commands stay declarative:
a command states the level and permissions it needs, the check resolves
the member and returns a PermissionResult that explains the decision.

IMPORTANT CONSTRAINTS:
- This module MUST NOT register Discord commands
- This module MUST NOT perform Discord API calls directly
- Members are passed in as PrincipalDescriptor objects
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from services.discord.logging import DiscordLogAdapter
from services.discord.permissions.capabilities import SYSTEM_ADMIN
from services.discord.permissions.models import PrincipalDescriptor, ResolutionResult
from services.discord.permissions.resolver import LevelResolver


class PermissionResult:
    """
    Structured permission check result.

    This allows commands and supervisors to handle permissions consistently
    without duplicating messaging or logic.
    """

    def __init__(
        self,
        allowed: bool,
        *,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.allowed = allowed
        self.reason = reason
        self.metadata = metadata or {}

    def __bool__(self) -> bool:
        return self.allowed

    def __repr__(self) -> str:
        return f"PermissionResult(allowed={self.allowed!r}, reason={self.reason!r})"


class DiscordPermissionResolver:
    """Authorization checks for Discord command surfaces."""

    def __init__(
        self,
        resolver: LevelResolver,
        *,
        logger: Optional[DiscordLogAdapter] = None,
    ):
        self._resolver = resolver
        self._logger = logger or resolver.audit

    @property
    def resolver(self) -> LevelResolver:
        return self._resolver

    def _record(
        self,
        check: str,
        principal: PrincipalDescriptor,
        result: PermissionResult,
    ) -> PermissionResult:
        self._logger.log_permission_check(
            check=check,
            guild_id=principal.guild_id,
            user_id=principal.user_id,
            allowed=result.allowed,
            reason=result.reason,
            extra=result.metadata,
        )
        return result

    @staticmethod
    def _metadata(resolved: ResolutionResult, **extra: Any) -> Dict[str, Any]:
        return {"level": str(resolved.level) if resolved.is_unbounded else resolved.level, **extra}

    # --------------------------------------------------
    # Core Permission Checks
    # --------------------------------------------------

    async def can_execute_command(
        self,
        principal: PrincipalDescriptor,
        *,
        command_name: str,
        required_level: int = 0,
        system_permissions: Iterable[str] = (),
        native_permissions: Iterable[str] = (),
    ) -> PermissionResult:
        """
        Determine whether a member may execute a command.

        The member needs at least required_level and every listed system
        and native permission. System admins pass every check.
        """
        resolved = await self._resolver.resolve(principal)
        metadata = self._metadata(resolved, command=command_name)

        if resolved.is_unbounded:
            return self._record(command_name, principal, PermissionResult(True, metadata=metadata))

        if resolved.level < required_level:
            return self._record(
                command_name,
                principal,
                PermissionResult(
                    False,
                    reason=f"Requires level {required_level} (member has {resolved.level})",
                    metadata=metadata,
                ),
            )

        missing_system = sorted(set(system_permissions) - resolved.granted_system_permissions)
        missing_native = sorted(set(native_permissions) - resolved.granted_native_permissions)
        if missing_system or missing_native:
            metadata["missing_system_permissions"] = missing_system
            metadata["missing_native_permissions"] = missing_native
            return self._record(
                command_name,
                principal,
                PermissionResult(
                    False,
                    reason="Missing permissions: " + ", ".join(missing_system + missing_native),
                    metadata=metadata,
                ),
            )

        return self._record(command_name, principal, PermissionResult(True, metadata=metadata))

    # --------------------------------------------------
    # Convenience Policies
    # --------------------------------------------------

    async def require_admin(self, principal: PrincipalDescriptor) -> PermissionResult:
        """Allow system admins only."""
        resolved = await self._resolver.resolve(principal)
        allowed = resolved.is_unbounded or SYSTEM_ADMIN in resolved.granted_system_permissions
        return self._record(
            "__admin__",
            principal,
            PermissionResult(
                allowed,
                reason=None if allowed else "System administrators only",
                metadata=self._metadata(resolved),
            ),
        )

    async def can_moderate(
        self,
        moderator: PrincipalDescriptor,
        target: PrincipalDescriptor,
    ) -> PermissionResult:
        allowed = await self._resolver.can_moderate(moderator, target)
        return self._record(
            "__moderate__",
            moderator,
            PermissionResult(
                allowed,
                reason=None if allowed else "You don't have permission to moderate this member",
                metadata={"target_user_id": target.user_id},
            ),
        )
