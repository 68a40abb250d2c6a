"""Normalization of Discord (native) permission flag names."""

from __future__ import annotations

import re
from typing import Optional

import discord

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

NATIVE_PERMISSION_FLAGS = frozenset(discord.Permissions.VALID_FLAGS)


def normalize_native_permission(name: object) -> Optional[str]:
    """
    Return the discord.py flag name for a stored permission name.

    Accepts snake_case flag names ("kick_members") as well as the CamelCase
    names older level records were written with ("KickMembers").
    Returns None for anything that is not a known flag.
    """
    if not isinstance(name, str):
        return None

    raw = name.strip()
    if not raw:
        return None

    if raw in NATIVE_PERMISSION_FLAGS:
        return raw

    snake = _CAMEL_BOUNDARY.sub("_", raw).lower()
    if snake in NATIVE_PERMISSION_FLAGS:
        return snake

    return None
