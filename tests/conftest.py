"""Shared snapshot fixtures."""

from __future__ import annotations

import pytest

from scripts.access_audit.snapshot import DirectorySnapshot, Group, Identity, Resource


def _ids(*logins: str) -> tuple[Identity, ...]:
    return tuple(Identity(login) for login in logins)


@pytest.fixture
def eng_snapshot() -> DirectorySnapshot:
    """Eng (bob) contains Frontend (alice); org has alice, bob, carol."""
    eng = Group(1, "Eng")
    frontend = Group(2, "Frontend", parent_id=1)
    ops = Group(3, "ops")
    return DirectorySnapshot(
        organization="acme",
        members=(
            Identity("alice", "alice@acme.test"),
            Identity("bob"),
            Identity("carol", "carol@acme.test"),
        ),
        groups=(eng, frontend, ops),
        group_members={1: _ids("bob"), 2: _ids("alice"), 3: ()},
        resources=(
            Resource("repo1", (), _ids("alice", "bob", "carol")),
            Resource("repo2", (eng,), _ids("alice", "dave")),
            Resource("repo3", (), ()),
        ),
    )
