"""Shared fixtures for permission runtime tests."""

import os

os.environ.setdefault("GUILDLEVELS_LOG_TO_FILE", "0")

import pytest

from shared.config.permissions import PermissionsConfig
from shared.logging import logger as shared_logger
from services.discord.permissions.builtin import build_default_registry
from services.discord.permissions.cache import LevelSnapshotCache
from services.discord.permissions.errors import StoreUnavailableError
from services.discord.permissions.loader import LevelStoreLoader
from services.discord.permissions.models import PrincipalDescriptor
from services.discord.permissions.resolver import LevelResolver

GUILD_ID = 1000
OTHER_GUILD_ID = 2000
ADMIN_ID = 42


class FakeLevelStore:
    """In-memory level store with switchable availability."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.available = True
        self.calls = 0
        self.gate = None

    async def load_enabled_level_definitions(self, scope=None):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if not self.available:
            raise StoreUnavailableError("fake store offline", source="memory")
        return [dict(r) for r in self.records if not r.get("disabled", False)]


def make_record(record_id=1, **overrides):
    record = {
        "id": record_id,
        "guild_id": str(GUILD_ID),
        "level": 0,
        "granted_discord_permissions": [],
        "granted_system_permissions": [],
        "users": [],
        "roles": [],
        "disabled": False,
    }
    record.update(overrides)
    return record


def make_principal(user_id=1, guild_id=GUILD_ID, roles=(), native=(), owner_id=None):
    return PrincipalDescriptor(
        user_id=user_id,
        guild_id=guild_id,
        role_ids=tuple(roles),
        native_permissions=frozenset(native),
        guild_owner_id=owner_id,
    )


@pytest.fixture
def config():
    return PermissionsConfig(system_admins=(ADMIN_ID,))


@pytest.fixture
def registry(config):
    return build_default_registry(config)


@pytest.fixture
def store():
    return FakeLevelStore()


@pytest.fixture
def loader(store, registry):
    return LevelStoreLoader(store, registry)


@pytest.fixture
def resolver(loader, registry):
    return LevelResolver(LevelSnapshotCache(loader), registry)


@pytest.fixture
def captured_logs(caplog):
    """Route the non-propagating project loggers into caplog."""
    caplog.set_level("DEBUG")
    loggers = list(shared_logger._LOGGERS.values())
    for logger in loggers:
        logger.addHandler(caplog.handler)
    yield caplog
    for logger in loggers:
        logger.removeHandler(caplog.handler)

