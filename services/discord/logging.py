"""
Discord Logging Adapter (Permission Runtime)

Structured logging for permission events. Events are normalized into flat
dicts and written through the shared logger so they land in the discord
runtime log file alongside lifecycle output.

IMPORTANT:
- This module MUST NOT send network requests
- This module MUST NOT depend on discord.py objects directly
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shared.logging.logger import get_logger

log = get_logger("discord.logging", runtime="discord")


class DiscordLogAdapter:
    """
    Adapter for logging permission-related Discord events.
    """

    def __init__(self):
        self._enabled: bool = True

    # --------------------------------------------------
    # Lifecycle / Control
    # --------------------------------------------------

    def enable(self):
        """Enable structured permission logging."""
        self._enabled = True
        log.debug("DiscordLogAdapter enabled")

    def disable(self):
        """Disable structured permission logging."""
        self._enabled = False
        log.debug("DiscordLogAdapter disabled")

    @property
    def enabled(self) -> bool:
        return self._enabled

    # --------------------------------------------------
    # Structured Event Hooks
    # --------------------------------------------------

    def log_event(
        self,
        *,
        event: str,
        level: str = "info",
        guild_id: Optional[int] = None,
        user_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Record a structured event. Returns the emitted payload, or None
        when logging is disabled.
        """

        if not self._enabled:
            return None

        payload = {
            "event": event,
            "guild_id": guild_id,
            "user_id": user_id,
            "data": data or {},
        }

        if level == "debug":
            log.debug(f"Discord event: {payload}")
        elif level == "error":
            log.error(f"Discord event: {payload}")
        else:
            log.info(f"Discord event: {payload}")

        return payload

    # --------------------------------------------------
    # Convenience Helpers
    # --------------------------------------------------

    def log_reload(
        self,
        *,
        success: bool,
        generation: int,
        error: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Log a permission level reload attempt."""
        return self.log_event(
            event="permission_levels_reload",
            level="info" if success else "error",
            data={
                "success": success,
                "generation": generation,
                "error": error,
            },
        )

    def log_permission_check(
        self,
        *,
        check: str,
        guild_id: Optional[int],
        user_id: Optional[int],
        allowed: bool,
        reason: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Log the outcome of an authorization check."""
        return self.log_event(
            event="permission_check",
            level="debug" if allowed else "info",
            data={
                "check": check,
                "allowed": allowed,
                "reason": reason,
                "extra": extra or {},
            },
            guild_id=guild_id,
            user_id=user_id,
        )
