"""MCP server for tally: exposes the projects overview to AI assistants."""

from __future__ import annotations

import json
from datetime import date

from mcp.server.fastmcp import FastMCP

from tally.directory import MemberDirectory
from tally.errors import StoreUnavailableError
from tally.models import SortMode
from tally.names import resolve_assignee_names, resolve_responsible_names
from tally.overview import OverviewController
from tally.persistence import Store
from tally.progress import ProgressAggregator
from tally.ranking import coerce_sort_mode
from tally.workload import summarize_workload

mcp = FastMCP(
    "tally",
    instructions="""\
tally tracks projects, their tasks and the members assigned to them. \
Progress is the share of a project's tasks whose status is "done". \
Fully complete projects always list after incomplete ones; within each \
group the user's chosen sort mode applies, then nearest end date, then name.

Assignee names are resolved from member ids against the current roster, so \
renamed members show their new name and removed members are not shown. \
"(unassigned)" means no current member could be resolved.

Use get_overview for the ranked project list with progress, get_assignees \
to see who works on a task, get_workload for per-member counts and \
set_sort_mode to change the overview ordering.\
""",
)


def _get_store() -> Store:
    return Store()


@mcp.tool()
async def get_overview() -> str:
    """Get all projects in display order with task counts and progress."""
    store = _get_store()
    try:
        board = store.load()
    except StoreUnavailableError as e:
        return f"Error: {e}"

    mode = coerce_sort_mode(board.settings.get("sortMode"))
    directory = MemberDirectory(board.members)
    controller = OverviewController(ProgressAggregator(store), mode=mode)
    state = await controller.refresh(board.projects.values())

    result = []
    for p in state.projects:
        prog = state.progress_for(p.id)
        result.append({
            "id": p.id,
            "name": p.name,
            "endDate": p.end_date,
            "responsibles": resolve_responsible_names(p, directory),
            "progress": prog.to_dict() if prog else None,
        })
    payload = {"sortMode": mode.value, "projects": result}
    if state.error is not None:
        payload["error"] = str(state.error)
    return json.dumps(payload, indent=2, ensure_ascii=False)


@mcp.tool()
def get_assignees(task_id: str) -> str:
    """Get the current display names of a task's assignees.

    Args:
        task_id: Task ID (e.g. "T-5")
    """
    store = _get_store()
    try:
        board = store.load()
    except StoreUnavailableError as e:
        return f"Error: {e}"
    if task_id not in board.tasks:
        return f"Error: task {task_id} not found."
    names = resolve_assignee_names(board.tasks[task_id], MemberDirectory(board.members))
    return json.dumps(names, ensure_ascii=False)


@mcp.tool()
def get_workload(start: str | None = None, end: str | None = None) -> str:
    """Get done / in progress / not started task counts for every member.

    Args:
        start: Only count tasks due on or after this date (YYYY-MM-DD)
        end: Only count tasks due on or before this date (YYYY-MM-DD)
    """
    try:
        start_day = date.fromisoformat(start) if start else None
        end_day = date.fromisoformat(end) if end else None
    except ValueError as e:
        return f"Error: invalid date: {e}"
    store = _get_store()
    try:
        board = store.load()
    except StoreUnavailableError as e:
        return f"Error: {e}"
    rows = summarize_workload(
        board.tasks.values(), MemberDirectory(board.members), start_day, end_day
    )
    return json.dumps([r.to_dict() for r in rows], indent=2, ensure_ascii=False)


@mcp.tool()
def set_sort_mode(mode: str) -> str:
    """Set the projects overview ordering.

    Args:
        mode: dueDateAscending, dueDateDescending, progressDescending or progressAscending
    """
    try:
        sort_mode = SortMode(mode)
    except ValueError:
        valid = ", ".join(m.value for m in SortMode)
        return f"Error: invalid sort mode '{mode}'. Use: {valid}"
    store = _get_store()
    try:
        board = store.load()
    except StoreUnavailableError as e:
        return f"Error: {e}"
    board.settings["sortMode"] = sort_mode.value
    store.save(board)
    return f"Sort mode set to {sort_mode.value}."


def main():
    """Entry point for the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
