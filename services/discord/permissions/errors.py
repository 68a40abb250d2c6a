"""
Permission resolution error taxonomy.

Structural failures (store unreachable, resolver not booted) are raised to
the boot / administrative layer. Per-definition and per-predicate problems
are logged and never propagate past their own evaluation.
"""

from __future__ import annotations

from typing import Optional


class PermissionsError(RuntimeError):
    """Base class for permission runtime failures."""


class StoreUnavailableError(PermissionsError):
    """The level store could not be reached or read during a load."""

    def __init__(self, message: str, *, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UninitializedResolverError(PermissionsError):
    """
    Resolution was attempted before the first successful rebuild.

    Never tolerated silently: an empty index would report every member as
    unprivileged.
    """


class CapabilityEvaluationFailure(PermissionsError):
    """A capability predicate raised while being evaluated for a principal."""

    def __init__(self, capability: str, user_id: int, guild_id: int, cause: BaseException):
        super().__init__(
            f"Capability '{capability}' failed for user={user_id} guild={guild_id}: "
            f"{type(cause).__name__}: {cause}"
        )
        self.capability = capability
        self.user_id = user_id
        self.guild_id = guild_id
        self.cause = cause


class UnknownCapabilityWarning(UserWarning):
    """A level definition references a system permission that is not registered."""

    def __init__(self, name: str, level_id: Optional[object] = None):
        where = f" (level {level_id})" if level_id is not None else ""
        super().__init__(f"Permission {name} does not exist{where}; dropped")
        self.name = name
        self.level_id = level_id
