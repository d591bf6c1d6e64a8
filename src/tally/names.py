"""Turn assignment references into current display names.

Member ids are the durable key; display names are always re-read from the
directory snapshot, never trusted from the task or project record. A
reference that no longer resolves (deleted member, renamed-away legacy
name) is dropped rather than echoed.
"""

from __future__ import annotations

from collections.abc import Iterable

from tally.config import settings
from tally.directory import MemberDirectory
from tally.log import get_logger
from tally.models import (
    ByIds,
    ByLegacyString,
    Empty,
    Member,
    Project,
    Task,
    split_names,
)

logger = get_logger(__name__)

UNASSIGNED = settings.UNASSIGNED_LABEL


def _dedupe(members: Iterable[Member]) -> list[Member]:
    seen: set[str] = set()
    out: list[Member] = []
    for m in members:
        if m.id not in seen:
            seen.add(m.id)
            out.append(m)
    return out


def _members_by_ids(ids: Iterable[str], directory: MemberDirectory) -> list[Member]:
    found = []
    for member_id in dict.fromkeys(ids):
        member = directory.by_id(member_id)
        if member is None:
            logger.debug("Dropping unknown member id %s", member_id)
            continue
        found.append(member)
    return found


def _members_by_names(raw: str | None, directory: MemberDirectory) -> list[Member]:
    found = []
    for fragment in split_names(raw):
        member = directory.by_name(fragment)
        if member is None:
            logger.debug("Dropping unmatched legacy name %r", fragment)
            continue
        found.append(member)
    return _dedupe(found)


def _names_or_unassigned(members: list[Member]) -> list[str]:
    if not members:
        return [UNASSIGNED]
    return [m.name for m in members]


def resolve_assignee_members(task: Task, directory: MemberDirectory) -> list[Member]:
    """Members currently assigned to *task*, in assignment order."""
    match task.assignment:
        case ByIds(member_ids=ids):
            return _members_by_ids(ids, directory)
        case ByLegacyString(names=raw):
            return _members_by_names(raw, directory)
        case Empty():
            return []


def resolve_assignee_names(task: Task, directory: MemberDirectory) -> list[str]:
    """Display names for a task's assignees, or ``[UNASSIGNED]``."""
    return _names_or_unassigned(resolve_assignee_members(task, directory))


def resolve_responsible_members(
    project: Project, directory: MemberDirectory
) -> list[Member]:
    if not project.responsibles:
        return _members_by_names(project.responsible, directory)

    found = []
    for entry in project.responsibles:
        if entry.member_id:
            # An id that no longer resolves is a removed member; never fall
            # back to its cached name.
            member = directory.by_id(entry.member_id)
        elif entry.member_name and entry.member_name.strip():
            member = directory.by_name(entry.member_name.strip())
        else:
            member = None
        if member is None:
            logger.debug("Dropping unresolved responsible %r on %s", entry, project.id)
            continue
        found.append(member)
    return _dedupe(found)


def resolve_responsible_names(project: Project, directory: MemberDirectory) -> list[str]:
    """Display names for a project's responsibles, or ``[UNASSIGNED]``."""
    return _names_or_unassigned(resolve_responsible_members(project, directory))


def resolve_project_member_names(
    project: Project, directory: MemberDirectory
) -> list[str]:
    """Display names for a project's legacy ``members`` string."""
    return _names_or_unassigned(_members_by_names(project.members, directory))


def format_names(names: list[str], separator: str = ", ") -> str:
    return separator.join(names) if names else UNASSIGNED


def is_user_involved(project: Project, email: str | None, name: str | None) -> bool:
    """Whether the user identified by *email* / *name* works on *project*.

    Checks, in order: the single responsible email, the structured
    responsible entries, the legacy responsible string and the legacy
    members string.
    """
    email = (email or "").strip().lower()
    name = (name or "").strip()
    if not email and not name:
        return False

    if email and (project.responsible_email or "").strip().lower() == email:
        return True

    for entry in project.responsibles:
        if email and (entry.member_email or "").strip().lower() == email:
            return True
        if name and (entry.member_name or "").strip() == name:
            return True

    if name and name in split_names(project.responsible):
        return True

    tokens = split_names(project.members)
    if name and name in tokens:
        return True
    if email and email in (t.lower() for t in tokens):
        return True
    return False
