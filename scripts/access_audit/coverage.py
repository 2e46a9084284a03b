"""Explain a repository's access list as teams plus leftover individuals.

The explanation is built in three parts, always in this order:

1. the synthetic "everybody in <org>" group, when every organisation member
   has access;
2. every team explicitly granted access, sorted case-insensitively by name;
3. each accessor not covered by 1 or 2, sorted case-insensitively by login.

Explicitly granted teams are always listed, even when their members overlap
other grantees or are disjoint from the accessors. This is not a minimum set
cover; downstream readers expect every granted team to appear.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from scripts.access_audit.membership import MembershipResolver
from scripts.access_audit.snapshot import Group, Resource, group_sort_key, sort_identities

logger = logging.getLogger("access_audit.coverage")

NO_ACCESS_DISPLAY = "-"


@dataclass(frozen=True)
class GroupGrantee:
    """A named group. ``group_id`` is None for the synthetic organisation group."""

    name: str
    group_id: Optional[int] = None

    @property
    def synthetic(self) -> bool:
        return self.group_id is None

    @property
    def display(self) -> str:
        return self.name


@dataclass(frozen=True)
class IndividualGrantee:
    login: str

    @property
    def display(self) -> str:
        return self.login


@dataclass(frozen=True)
class NoAccess:
    """Marker for a repository nobody has access to."""

    @property
    def display(self) -> str:
        return NO_ACCESS_DISPLAY


NO_ACCESS = NoAccess()

Grantee = Union[GroupGrantee, IndividualGrantee, NoAccess]


class AccessCoverageReducer:
    def __init__(self, resolver: MembershipResolver) -> None:
        self.resolver = resolver
        self.everybody_name = resolver.snapshot.everybody_name

    def explain(self, resource: Resource) -> tuple[Grantee, ...]:
        accessors = set(resource.accessors)
        if not accessors:
            return (NO_ACCESS,)

        grantees: list[Grantee] = []
        covered: set[str] = set()

        organization = self.resolver.organization_members()
        if organization <= accessors:
            grantees.append(GroupGrantee(self.everybody_name))
            covered.update(member.key for member in organization)

        for group in _unique_groups(resource.groups):
            grantees.append(GroupGrantee(group.name, group.id))
            covered.update(
                member.key for member in self.resolver.effective_members(group.id)
            )

        for identity in sort_identities(accessors):
            if identity.key not in covered:
                grantees.append(IndividualGrantee(identity.login))

        logger.debug(
            "Explained %s with %d grantees",
            resource.name,
            len(grantees),
            extra={"resource": resource.name, "grantees": len(grantees)},
        )
        return tuple(grantees)


def display_names(grantees: tuple[Grantee, ...]) -> list[str]:
    return [grantee.display for grantee in grantees]


def _unique_groups(groups: tuple[Group, ...]) -> list[Group]:
    seen: set[int] = set()
    unique: list[Group] = []
    for group in sorted(groups, key=group_sort_key):
        if group.id in seen:
            continue
        seen.add(group.id)
        unique.append(group)
    return unique
