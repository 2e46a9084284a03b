"""Immutable in-memory capture of an organisation's directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

EVERYBODY_TEMPLATE = "everybody in {org}"


@dataclass(frozen=True, eq=False)
class Identity:
    """A person, identified by login. Logins compare case-insensitively."""

    login: str
    email: Optional[str] = None

    @property
    def key(self) -> str:
        return self.login.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass(frozen=True)
class Group:
    id: int
    name: str
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class Resource:
    """A repository with its explicitly granted groups and full accessor list."""

    name: str
    groups: tuple[Group, ...] = ()
    accessors: tuple[Identity, ...] = ()


@dataclass(frozen=True)
class DirectorySnapshot:
    organization: str
    members: tuple[Identity, ...] = ()
    groups: tuple[Group, ...] = ()
    group_members: Mapping[int, tuple[Identity, ...]] = field(default_factory=dict)
    resources: tuple[Resource, ...] = ()
    emails_available: bool = True

    @property
    def everybody_name(self) -> str:
        return EVERYBODY_TEMPLATE.format(org=self.organization)


def identity_sort_key(identity: Identity) -> tuple[str, str]:
    return (identity.key, identity.login)


def group_sort_key(group: Group) -> tuple[str, str, int]:
    return (group.name.lower(), group.name, group.id)


def sort_identities(identities: Iterable[Identity]) -> list[Identity]:
    return sorted(identities, key=identity_sort_key)


def sort_groups(groups: Iterable[Group]) -> list[Group]:
    return sorted(groups, key=group_sort_key)


def build_containment_map(groups: Iterable[Group]) -> dict[int, list[int]]:
    """Map parent group id -> child group ids.

    A parent id that names no group in ``groups`` is treated as no parent:
    the edge is dropped, so an unknown id never collects orphaned children.
    """
    groups = list(groups)
    known_ids = {group.id for group in groups}
    children: dict[int, list[int]] = {}
    for group in groups:
        if group.parent_id in known_ids:
            children.setdefault(group.parent_id, []).append(group.id)
    for child_ids in children.values():
        child_ids.sort()
    return children
