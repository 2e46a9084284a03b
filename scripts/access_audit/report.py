"""Assemble the access report for one snapshot."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from scripts.access_audit.coverage import AccessCoverageReducer, Grantee
from scripts.access_audit.membership import MembershipResolver
from scripts.access_audit.snapshot import (
    DirectorySnapshot,
    Identity,
    sort_groups,
)

logger = logging.getLogger("access_audit.report")


@dataclass(frozen=True)
class GroupSection:
    name: str
    members: tuple[Identity, ...] = ()


@dataclass(frozen=True)
class ResourceRow:
    name: str
    grantees: tuple[Grantee, ...] = ()


@dataclass(frozen=True)
class AccessReport:
    organization: str
    everybody: GroupSection
    groups: tuple[GroupSection, ...] = ()
    resources: tuple[ResourceRow, ...] = ()
    generated_in_s: float = field(default=0.0, compare=False)


def build_report(snapshot: DirectorySnapshot, workers: int = 1) -> AccessReport:
    """Resolve every team and explain every repository in ``snapshot``.

    A fresh resolver is created per call, so its cache never outlives the
    run. With ``workers > 1`` the cache is filled up front and repositories
    are explained on a thread pool; the output is identical either way.
    """
    started = time.monotonic()
    resolver = MembershipResolver(snapshot)
    reducer = AccessCoverageReducer(resolver)

    resolved = resolver.resolve_all()
    # Team listings carry no emails; show the organisation's record instead.
    directory = {member.key: member for member in snapshot.members}
    groups = tuple(
        GroupSection(
            group.name,
            tuple(directory.get(m.key, m) for m in resolver.sorted_members(group.id)),
        )
        for group in sort_groups(snapshot.groups)
    )
    everybody = GroupSection(
        snapshot.everybody_name, tuple(resolver.sorted_organization_members())
    )

    resources = sorted(snapshot.resources, key=lambda r: (r.name.lower(), r.name))
    if workers > 1 and len(resources) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            explanations = list(pool.map(reducer.explain, resources))
    else:
        explanations = [reducer.explain(resource) for resource in resources]

    rows = tuple(
        ResourceRow(resource.name, grantees)
        for resource, grantees in zip(resources, explanations)
    )
    elapsed = round(time.monotonic() - started, 3)
    logger.info(
        "Report built: %d teams, %d repositories",
        resolved,
        len(rows),
        extra={
            "org": snapshot.organization,
            "teams": resolved,
            "repositories": len(rows),
            "duration_s": elapsed,
        },
    )
    return AccessReport(
        organization=snapshot.organization,
        everybody=everybody,
        groups=groups,
        resources=rows,
        generated_in_s=elapsed,
    )

