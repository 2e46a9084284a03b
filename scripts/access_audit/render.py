"""Markdown rendering of an AccessReport."""

from __future__ import annotations

from scripts.access_audit.coverage import NO_ACCESS_DISPLAY, display_names
from scripts.access_audit.report import AccessReport, GroupSection

NO_MEMBERS = "*No members*"
MISSING_EMAIL = "-"


def _members_table(section: GroupSection) -> list[str]:
    lines = ["| Username | Email |", "|----------|-------|"]
    for member in section.members:
        lines.append(f"| {member.login} | {member.email or MISSING_EMAIL} |")
    lines.append("")
    return lines


def _group_block(section: GroupSection, allow_empty_table: bool = False) -> list[str]:
    lines = [f"## {section.name}", ""]
    if section.members or allow_empty_table:
        lines.extend(_members_table(section))
    else:
        lines.extend([NO_MEMBERS, ""])
    return lines


def render_markdown(report: AccessReport) -> str:
    """Render groups (everybody first, then teams) and the projects table."""
    lines = ["# Groups", ""]
    # The organisation group always gets a table, even when empty.
    lines.extend(_group_block(report.everybody, allow_empty_table=True))
    for section in report.groups:
        lines.extend(_group_block(section))

    lines.extend(["# Projects", ""])
    lines.append("| Name | Shared With |")
    lines.append("|------|-------------|")
    for row in report.resources:
        shared_with = ", ".join(display_names(row.grantees)) or NO_ACCESS_DISPLAY
        lines.append(f"| {row.name} | {shared_with} |")
    lines.append("")
    return "\n".join(lines) + "\n"
