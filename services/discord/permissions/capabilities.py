"""
System capability registry.

A capability is a named system permission plus a predicate that decides,
for a given member, whether the capability is granted dynamically (on top
of whatever permission levels grant). Predicates may be plain functions or
coroutines; coroutine predicates are free to perform I/O.

The registry is assembled once at startup and iterated in registration
order during every resolution.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterator, List, Optional, Union

from shared.logging.logger import get_logger
from services.discord.permissions.models import MergedProfile, PrincipalDescriptor

log = get_logger("permissions.capabilities")

SYSTEM_ADMIN = "system_admin"

PredicateResult = Union[bool, Awaitable[bool]]
Predicate = Callable[[PrincipalDescriptor], PredicateResult]
UnboundedPredicate = Callable[[MergedProfile, PrincipalDescriptor], PredicateResult]


async def _await_predicate(result: PredicateResult) -> bool:
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


@dataclass(frozen=True)
class Capability:
    name: str
    predicate: Predicate = field(compare=False, repr=False)
    description: str = ""

    async def evaluate(self, principal: PrincipalDescriptor) -> bool:
        return await _await_predicate(self.predicate(principal))


def default_unbounded_predicate(profile: MergedProfile, principal: PrincipalDescriptor) -> bool:
    return SYSTEM_ADMIN in profile.granted_system_permissions


class CapabilityRegistry:
    """
    Ordered registry of system capabilities.

    Re-registering a name replaces the earlier capability in place, keeping
    the registry authoritative without changing evaluation order.
    """

    def __init__(
        self,
        capabilities: Optional[List[Capability]] = None,
        *,
        unbounded_predicate: UnboundedPredicate = default_unbounded_predicate,
    ) -> None:
        self._capabilities: Dict[str, Capability] = {}
        self._unbounded_predicate = unbounded_predicate

        for capability in capabilities or []:
            self.register(capability)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, capability: Capability) -> None:
        if not capability.name or not capability.name.strip():
            raise ValueError("Capability name must be a non-empty string")

        if capability.name in self._capabilities:
            log.debug(f"Replacing registered capability: {capability.name}")
        self._capabilities[capability.name] = capability

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Optional[Capability]:
        return self._capabilities.get(name)

    def list_capabilities(self) -> List[Capability]:
        return list(self._capabilities.values())

    def names(self) -> List[str]:
        return list(self._capabilities.keys())

    def resolve_name(self, raw: object) -> Optional[str]:
        """
        Map a stored system permission name onto a registered capability.

        Exact matches win; otherwise a unique case-insensitive match is
        accepted. Returns None when nothing matches.
        """
        if not isinstance(raw, str):
            return None

        name = raw.strip()
        if name in self._capabilities:
            return name

        folded = [known for known in self._capabilities if known.lower() == name.lower()]
        if len(folded) == 1:
            return folded[0]

        return None

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __iter__(self) -> Iterator[Capability]:
        return iter(self.list_capabilities())

    def __len__(self) -> int:
        return len(self._capabilities)

    # ------------------------------------------------------------------
    # System admin
    # ------------------------------------------------------------------

    async def is_unbounded_principal(
        self,
        profile: MergedProfile,
        principal: PrincipalDescriptor,
    ) -> bool:
        return await _await_predicate(self._unbounded_predicate(profile, principal))
