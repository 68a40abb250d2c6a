"""Tests for the structured permission event logger."""

from services.discord.logging import DiscordLogAdapter


def test_log_event_returns_payload(captured_logs):
    adapter = DiscordLogAdapter()

    payload = adapter.log_event(event="custom", guild_id=1, user_id=2, data={"a": 1})

    assert payload == {"event": "custom", "guild_id": 1, "user_id": 2, "data": {"a": 1}}
    assert "Discord event" in captured_logs.text


def test_disabled_adapter_emits_nothing():
    adapter = DiscordLogAdapter()
    adapter.disable()

    assert not adapter.enabled
    assert adapter.log_reload(success=True, generation=1) is None

    adapter.enable()
    assert adapter.log_reload(success=True, generation=1) is not None


def test_reload_and_check_payloads(captured_logs):
    adapter = DiscordLogAdapter()

    failed = adapter.log_reload(success=False, generation=3, error="offline")
    check = adapter.log_permission_check(
        check="ban", guild_id=10, user_id=20, allowed=False, reason="Requires level 5"
    )

    assert failed["event"] == "permission_levels_reload"
    assert failed["data"] == {"success": False, "generation": 3, "error": "offline"}
    assert check["data"]["check"] == "ban"
    assert check["data"]["extra"] == {}
    assert any(r.levelname == "ERROR" for r in captured_logs.records)


def test_event_levels_follow_outcome(captured_logs):
    adapter = DiscordLogAdapter()

    adapter.log_permission_check(check="warn", guild_id=1, user_id=2, allowed=True)
    adapter.log_permission_check(check="warn", guild_id=1, user_id=2, allowed=False)
    adapter.log_reload(success=True, generation=1)

    levels = [r.levelname for r in captured_logs.records if "Discord event" in r.getMessage()]
    assert levels == ["DEBUG", "INFO", "INFO"]
