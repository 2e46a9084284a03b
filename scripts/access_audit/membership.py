"""Effective team membership, resolved through nested teams.

Teams reference their parent; a team's effective members are its direct
members plus the direct members of every team reachable below it. Malformed
parent links (cycles, parents that do not exist) are tolerated: a team that
is reached a second time during one resolution contributes nothing further,
so resolution always terminates.
"""

from __future__ import annotations

import logging
import threading

from scripts.access_audit.snapshot import (
    DirectorySnapshot,
    Identity,
    build_containment_map,
    sort_identities,
)

logger = logging.getLogger("access_audit.membership")


class MembershipResolver:
    """Memoising resolver scoped to a single report run.

    Construct one per snapshot. The cache is filled at most once per group;
    a lock makes concurrent first access from worker threads safe.
    """

    def __init__(self, snapshot: DirectorySnapshot) -> None:
        self.snapshot = snapshot
        self._children = build_containment_map(snapshot.groups)
        self._cache: dict[int, frozenset[Identity]] = {}
        self._lock = threading.RLock()
        self._organization = frozenset(snapshot.members)

    def effective_members(self, group_id: int) -> frozenset[Identity]:
        cached = self._cache.get(group_id)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._cache.get(group_id)
            if cached is None:
                cached = self._resolve(group_id)
                self._cache[group_id] = cached
            return cached

    def sorted_members(self, group_id: int) -> list[Identity]:
        return sort_identities(self.effective_members(group_id))

    def organization_members(self) -> frozenset[Identity]:
        return self._organization

    def sorted_organization_members(self) -> list[Identity]:
        return sort_identities(self._organization)

    def resolve_all(self) -> int:
        """Populate the cache for every known group. Returns the group count."""
        for group in self.snapshot.groups:
            self.effective_members(group.id)
        return len(self.snapshot.groups)

    def _resolve(self, group_id: int) -> frozenset[Identity]:
        members: set[Identity] = set()
        visiting = {group_id}
        stack = [group_id]
        while stack:
            current = stack.pop()
            members.update(self.snapshot.group_members.get(current, ()))
            for child_id in self._children.get(current, ()):
                if child_id in visiting:
                    # Each team has one parent, so a repeat visit means a cycle.
                    logger.warning(
                        "Team containment cycle at team %d (from team %d) "
                        "while resolving team %d, truncating",
                        child_id,
                        current,
                        group_id,
                    )
                    continue
                visiting.add(child_id)
                done = self._cache.get(child_id)
                if done is not None:
                    # Already resolved: covers everything below the child.
                    members.update(done)
                    continue
                stack.append(child_id)
        return frozenset(members)
