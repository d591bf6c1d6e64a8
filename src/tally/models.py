"""Member, project, task and progress records."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field


class TaskStatus(enum.StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class SortMode(enum.StrEnum):
    """Display orderings for the projects overview."""

    DUE_DATE_ASC = "dueDateAscending"
    DUE_DATE_DESC = "dueDateDescending"
    PROGRESS_DESC = "progressDescending"
    PROGRESS_ASC = "progressAscending"


def _str_list(value: object) -> list[str]:
    """Coerce a raw list field; anything that isn't a list reads as empty."""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def split_names(raw: str | None) -> list[str]:
    """Split a legacy comma-joined name string, dropping blank fragments."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass(frozen=True)
class Member:
    """A roster entry. ``id`` is durable, ``name`` may change."""

    id: str
    name: str
    email: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, d: dict) -> Member:
        return cls(
            id=d["id"],
            name=_opt_str(d.get("name")) or "",
            email=_opt_str(d.get("email")) or "",
        )


# ---------------------------------------------------------------------------
# Assignment variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ByIds:
    member_ids: tuple[str, ...]


@dataclass(frozen=True)
class ByLegacyString:
    names: str


@dataclass(frozen=True)
class Empty:
    pass


Assignment = ByIds | ByLegacyString | Empty


def make_assignment(member_ids: list[str] | None, legacy: str | None) -> Assignment:
    if member_ids:
        return ByIds(tuple(member_ids))
    if legacy and legacy.strip():
        return ByLegacyString(legacy)
    return Empty()


# ---------------------------------------------------------------------------
# Projects and tasks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Responsible:
    """One entry of a project's structured responsible list."""

    member_id: str | None = None
    member_name: str | None = None
    member_email: str | None = None

    def to_dict(self) -> dict:
        d = {}
        if self.member_id is not None:
            d["memberId"] = self.member_id
        if self.member_name is not None:
            d["memberName"] = self.member_name
        if self.member_email is not None:
            d["memberEmail"] = self.member_email
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Responsible:
        return cls(
            member_id=_opt_str(d.get("memberId")),
            member_name=_opt_str(d.get("memberName")),
            member_email=_opt_str(d.get("memberEmail")),
        )


@dataclass
class Project:
    id: str
    name: str
    end_date: str | None = None
    responsibles: list[Responsible] = field(default_factory=list)
    responsible: str | None = None  # legacy comma-joined names
    responsible_email: str | None = None
    members: str = ""  # legacy comma-joined names

    def to_dict(self) -> dict:
        d = {
            "projectName": self.name,
            "endDate": self.end_date,
            "responsibles": [r.to_dict() for r in self.responsibles],
            "members": self.members,
        }
        if self.responsible is not None:
            d["responsible"] = self.responsible
        if self.responsible_email is not None:
            d["responsibleEmail"] = self.responsible_email
        return d

    @classmethod
    def from_dict(cls, project_id: str, d: dict) -> Project:
        raw_responsibles = d.get("responsibles")
        if not isinstance(raw_responsibles, list):
            raw_responsibles = []
        return cls(
            id=project_id,
            name=_opt_str(d.get("projectName")) or "",
            end_date=_opt_str(d.get("endDate")),
            responsibles=[
                Responsible.from_dict(r) for r in raw_responsibles if isinstance(r, dict)
            ],
            responsible=_opt_str(d.get("responsible")),
            responsible_email=_opt_str(d.get("responsibleEmail")),
            members=_opt_str(d.get("members")) or "",
        )


@dataclass
class Task:
    """Assignment-relevant view of a task document."""

    id: str
    project_id: str
    name: str
    status: str = TaskStatus.NOT_STARTED
    assigned_members: list[str] = field(default_factory=list)
    assignee: str | None = None  # legacy comma-joined names
    due_date: str | None = None

    @property
    def assignment(self) -> Assignment:
        return make_assignment(self.assigned_members, self.assignee)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def to_dict(self) -> dict:
        d = {
            "projectId": self.project_id,
            "taskName": self.name,
            "status": str(self.status),
            "assignedMembers": self.assigned_members,
            "assignee": self.assignee,
        }
        if self.due_date is not None:
            d["dueDate"] = self.due_date
        return d

    @classmethod
    def from_dict(cls, task_id: str, d: dict) -> Task:
        # Unknown status strings are kept verbatim; they count as "not done".
        status = d.get("status", TaskStatus.NOT_STARTED)
        if not isinstance(status, str):
            status = TaskStatus.NOT_STARTED
        return cls(
            id=task_id,
            project_id=d.get("projectId", ""),
            name=_opt_str(d.get("taskName")) or "",
            status=status,
            assigned_members=_str_list(d.get("assignedMembers")),
            assignee=_opt_str(d.get("assignee")),
            due_date=_opt_str(d.get("dueDate")),
        )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def percentage(part: int, whole: int) -> int:
    """Half-up rounded integer percentage; 0 when *whole* is 0."""
    if whole <= 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


@dataclass(frozen=True)
class ProjectProgress:
    project_id: str
    total_tasks: int
    completed_tasks: int
    progress_percentage: int

    @property
    def is_completed(self) -> bool:
        return self.progress_percentage == 100

    @classmethod
    def from_counts(cls, project_id: str, total: int, completed: int) -> ProjectProgress:
        if total < 0 or not 0 <= completed <= total:
            raise ValueError(
                f"Invalid counts for {project_id}: {completed}/{total}"
            )
        return cls(
            project_id=project_id,
            total_tasks=total,
            completed_tasks=completed,
            progress_percentage=percentage(completed, total),
        )

    def to_dict(self) -> dict:
        return {
            "projectId": self.project_id,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "progressPercentage": self.progress_percentage,
        }
