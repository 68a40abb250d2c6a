"""
Profile merge.

The single fold used both when building the index (colliding definitions
for one scope/subject pair) and when resolving a member (all entries that
apply to them). It is commutative, associative and idempotent, and
merge_profiles() with no input is the empty level-0 profile.
"""

from __future__ import annotations

from typing import Optional, Set

from services.discord.permissions.models import MergedProfile


def merge_profiles(*profiles: Optional[MergedProfile]) -> MergedProfile:
    """Fold profiles: highest level wins, granted permission sets are unioned.

    ``None`` entries (missing index entries) are skipped.
    """
    level = 0
    native: Set[str] = set()
    system: Set[str] = set()

    for profile in profiles:
        if profile is None:
            continue

        native.update(profile.granted_native_permissions)
        system.update(profile.granted_system_permissions)
        level = max(level, profile.level)

    return MergedProfile(
        level=level,
        granted_native_permissions=frozenset(native),
        granted_system_permissions=frozenset(system),
    )
