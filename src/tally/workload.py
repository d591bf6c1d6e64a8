"""Per-member task counts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from tally.directory import MemberDirectory
from tally.models import Member, Task, TaskStatus, percentage
from tally.names import resolve_assignee_members


@dataclass
class MemberWorkload:
    member: Member
    done: int = 0
    working: int = 0
    todo: int = 0

    @property
    def total(self) -> int:
        return self.done + self.working + self.todo

    @property
    def completion_rate(self) -> int:
        return percentage(self.done, self.total)

    def to_dict(self) -> dict:
        return {
            "id": self.member.id,
            "name": self.member.name,
            "email": self.member.email,
            "done": self.done,
            "working": self.working,
            "todo": self.todo,
            "completionRate": self.completion_rate,
        }


def due_day(task: Task) -> date | None:
    """Calendar day of a task's due date, or None if missing/unparseable."""
    if not task.due_date:
        return None
    try:
        return datetime.fromisoformat(task.due_date.strip()).date()
    except ValueError:
        return None


def in_window(task: Task, start: date | None = None, end: date | None = None) -> bool:
    """Whether *task* is due within [start, end]; both ends inclusive.

    With no window every task qualifies. With a window, tasks without a
    usable due date never do.
    """
    if start is None and end is None:
        return True
    day = due_day(task)
    if day is None:
        return False
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def summarize_workload(
    tasks: Iterable[Task],
    directory: MemberDirectory,
    start: date | None = None,
    end: date | None = None,
) -> list[MemberWorkload]:
    """Count each member's tasks by status, in roster order.

    Tasks are attributed through the same id-first resolution used for
    display, so a renamed member keeps their history. Statuses outside the
    known three are ignored. *start* / *end* restrict the count to tasks due
    in that period.
    """
    rows = {m.id: MemberWorkload(member=m) for m in directory}
    for task in tasks:
        if not in_window(task, start, end):
            continue
        for member in resolve_assignee_members(task, directory):
            row = rows[member.id]
            if task.status == TaskStatus.DONE:
                row.done += 1
            elif task.status == TaskStatus.IN_PROGRESS:
                row.working += 1
            elif task.status == TaskStatus.NOT_STARTED:
                row.todo += 1
    return list(rows.values())
