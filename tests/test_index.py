"""Tests for building the level index from definitions."""
from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from services.discord.permissions.index import build_index
from services.discord.permissions.models import (
    EVERYONE,
    GLOBAL,
    IndexKey,
    MergedProfile,
    PermissionLevelDefinition,
)

GUILD = 1000


def definition(level, *, scope=GUILD, users=(), roles=(), native=(), system=(), disabled=False):
    return PermissionLevelDefinition(
        scope_id=scope,
        level=level,
        granted_native_permissions=frozenset(native),
        granted_system_permissions=frozenset(system),
        subject_user_ids=frozenset(users),
        subject_role_ids=frozenset(roles),
        disabled=disabled,
    )


def test_each_subject_gets_an_entry():
    index = build_index([definition(4, users=[11, 12], roles=[500], system={"warn"})])

    assert set(index) == {IndexKey(GUILD, 11), IndexKey(GUILD, 12), IndexKey(GUILD, 500)}
    assert index.lookup(GUILD, 500) == MergedProfile(4, frozenset(), frozenset({"warn"}))


def test_colliding_role_definitions_are_merged_at_build_time():
    index = build_index([
        definition(2, roles=[77], native={"kick_members"}, system={"warn"}),
        definition(5, roles=[77], native={"ban_members"}, system={"ban"}),
    ])

    assert len(index) == 1
    entry = index[IndexKey(GUILD, 77)]
    assert entry.level == 5
    assert entry.granted_native_permissions == {"kick_members", "ban_members"}
    assert entry.granted_system_permissions == {"warn", "ban"}


def test_disabled_definitions_never_reach_the_index():
    index = build_index([
        definition(9, users=[11], disabled=True),
        definition(1, users=[12]),
    ])

    assert IndexKey(GUILD, 11) not in index
    assert index.definition_count == 1


def test_definition_without_subjects_contributes_nothing():
    index = build_index([definition(7, system={"ban"})])

    assert len(index) == 0
    assert index.definition_count == 1


def test_scopes_are_kept_apart():
    index = build_index([
        definition(1, scope=GLOBAL, users=[EVERYONE]),
        definition(3, scope=GLOBAL, users=[11]),
        definition(6, scope=GUILD, users=[11]),
    ])

    assert index.lookup(GLOBAL, EVERYONE).level == 1
    assert index.lookup(GLOBAL, 11).level == 3
    assert index.lookup(GUILD, 11).level == 6
    assert index.lookup(2000, 11) is None


def test_index_is_read_only():
    index = build_index([definition(1, users=[11])])

    with pytest.raises(TypeError):
        index._entries[IndexKey(GUILD, 99)] = MergedProfile()


def test_snapshot_summarizes_entries():
    index = build_index([
        definition(1, scope=GLOBAL, users=[EVERYONE]),
        definition(2, users=[11], roles=[12]),
    ])

    summary = index.snapshot()
    assert summary["entries"] == 3
    assert summary["definitions"] == 2
    assert summary["guilds"] == 1
    assert summary["global_entries"] == 1


definitions = st.lists(
    st.builds(
        definition,
        st.integers(min_value=0, max_value=20),
        scope=st.sampled_from([GLOBAL, GUILD, 2000]),
        users=st.frozensets(st.sampled_from([11, 12, EVERYONE]), max_size=2),
        roles=st.frozensets(st.sampled_from([500, 501]), max_size=2),
        system=st.frozensets(st.sampled_from(["warn", "ban", "kick"]), max_size=2),
        disabled=st.booleans(),
    ),
    max_size=8,
)


@settings(max_examples=75)
@given(defs=definitions, data=st.data())
def test_processing_order_does_not_change_the_index(defs, data):
    shuffled = data.draw(st.permutations(defs))

    assert dict(build_index(defs)) == dict(build_index(shuffled))
