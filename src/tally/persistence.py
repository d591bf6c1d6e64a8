"""JSON file persistence for members, projects, tasks and view settings."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path

from tally.config import settings
from tally.errors import StoreUnavailableError
from tally.models import Member, Project, Task

DEFAULT_DB_FILE = settings.DB_FILE


@dataclass
class Board:
    """Everything stored in one database file."""

    members: list[Member] = field(default_factory=list)
    projects: dict[str, Project] = field(default_factory=dict)
    tasks: dict[str, Task] = field(default_factory=dict)
    settings: dict = field(default_factory=dict)

    def tasks_for(self, project_id: str) -> list[Task]:
        return [t for t in self.tasks.values() if t.project_id == project_id]


class Store:
    """Reads and writes the board database (JSON file).

    Also serves as the member source and task source for the core.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_FILE):
        self.db_path = Path(db_path)

    def exists(self) -> bool:
        return self.db_path.exists()

    def load(self) -> Board:
        if not self.db_path.exists():
            return Board()

        try:
            raw = json.loads(self.db_path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StoreUnavailableError(f"Cannot read {self.db_path}: {e}") from e

        if not isinstance(raw, dict):
            raise StoreUnavailableError(f"Malformed {self.db_path}: expected an object")

        members = [
            Member.from_dict(m)
            for m in self._section(raw, "members", list)
            if isinstance(m, dict) and isinstance(m.get("id"), str)
        ]
        projects = {
            pid: Project.from_dict(pid, pdata)
            for pid, pdata in self._section(raw, "projects", dict).items()
            if isinstance(pdata, dict)
        }
        tasks = {
            tid: Task.from_dict(tid, tdata)
            for tid, tdata in self._section(raw, "tasks", dict).items()
            if isinstance(tdata, dict)
        }
        return Board(
            members=members,
            projects=projects,
            tasks=tasks,
            settings=self._section(raw, "settings", dict),
        )

    def _section(self, raw: dict, key: str, kind: type):
        """A top-level section; null or absent reads as empty."""
        value = raw.get(key)
        if value is None:
            return kind()
        if not isinstance(value, kind):
            raise StoreUnavailableError(
                f"Malformed {self.db_path}: \"{key}\" must be a {kind.__name__}"
            )
        return value

    def save(self, board: Board) -> None:
        raw = {
            "members": [m.to_dict() for m in board.members],
            "projects": {pid: p.to_dict() for pid, p in board.projects.items()},
            "tasks": {tid: t.to_dict() for tid, t in board.tasks.items()},
            "settings": board.settings,
        }
        self.db_path.write_text(json.dumps(raw, indent=4, ensure_ascii=False))

    def generate_id(self, existing, prefix: str) -> str:
        """Generate the next ``<prefix>-N`` id."""
        nums = []
        for key in existing:
            head, _, tail = key.partition("-")
            if head == prefix and tail.isdigit():
                nums.append(int(tail))
        return f"{prefix}-{max(nums, default=0) + 1}"

    # -- core collaborator interfaces --------------------------------------

    def get_members(self) -> list[Member]:
        return self.load().members

    async def get_tasks_by_project_id(self, project_id: str) -> list[Task]:
        board = await asyncio.to_thread(self.load)
        return board.tasks_for(project_id)
