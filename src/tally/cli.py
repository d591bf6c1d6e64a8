"""Typer CLI for tally."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from tally.config import settings
from tally.directory import MemberDirectory
from tally.errors import StoreUnavailableError
from tally.models import Member, Project, Responsible, SortMode, Task, TaskStatus
from tally.names import (
    format_names,
    is_user_involved,
    resolve_assignee_names,
    resolve_project_member_names,
    resolve_responsible_names,
)
from tally.overview import OverviewController
from tally.persistence import Board, Store
from tally.progress import ProgressAggregator
from tally.ranking import coerce_sort_mode
from tally.workload import summarize_workload

app = typer.Typer(
    name="tally",
    help="Project progress overview and assignee resolution.",
    no_args_is_help=True,
)
member_app = typer.Typer(help="Manage the member roster.", no_args_is_help=True)
project_app = typer.Typer(help="Manage projects.", no_args_is_help=True)
task_app = typer.Typer(help="Manage tasks.", no_args_is_help=True)
app.add_typer(member_app, name="member")
app.add_typer(project_app, name="project")
app.add_typer(task_app, name="task")

console = Console()

SORT_LABELS = {
    SortMode.DUE_DATE_ASC: "Due date (nearest first)",
    SortMode.DUE_DATE_DESC: "Due date (furthest first)",
    SortMode.PROGRESS_DESC: "Progress (highest first)",
    SortMode.PROGRESS_ASC: "Progress (lowest first)",
}


def _get_store() -> Store:
    return Store()


def _load(store: Store) -> Board:
    try:
        return store.load()
    except StoreUnavailableError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _progress_bar(pct: int, width: int = 10) -> str:
    filled = int(width * pct / 100)
    return f"[green]{'█' * filled}[/green][dim]{'░' * (width - filled)}[/dim]"


def _parse_day(value: str | None, flag: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date for {flag}: '{value}'. Use YYYY-MM-DD.[/red]")
        raise typer.Exit(1)


def _find_member(board: Board, member_id: str) -> Member:
    for m in board.members:
        if m.id == member_id:
            return m
    console.print(f"[red]Member {member_id} not found.[/red]")
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def init() -> None:
    """Create an empty board database in the current directory."""
    store = _get_store()
    if store.exists():
        console.print(f"[yellow]{store.db_path} already exists.[/yellow]")
        return
    store.save(Board())
    console.print(f"[green]Initialized {store.db_path}[/green]")


@member_app.command("add")
def member_add(
    name: str,
    email: Annotated[str, typer.Option("--email", "-e", help="Member email")] = "",
) -> None:
    """Add a member to the roster."""
    store = _get_store()
    board = _load(store)
    mid = store.generate_id((m.id for m in board.members), "M")
    board.members.append(Member(id=mid, name=name.strip(), email=email.strip()))
    store.save(board)
    console.print(f"[green]Added member '{name}' as {mid}[/green]")


@member_app.command("list")
def member_list() -> None:
    """List the roster."""
    board = _load(_get_store())
    if not board.members:
        console.print("No members found.")
        return
    table = Table(title="Members")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Email")
    for m in board.members:
        table.add_row(m.id, m.name, m.email or "-")
    console.print(table)


@member_app.command("rename")
def member_rename(member_id: str, new_name: str) -> None:
    """Rename a member. Id-based assignments follow the new name."""
    store = _get_store()
    board = _load(store)
    old = _find_member(board, member_id)
    board.members = [
        Member(id=m.id, name=new_name.strip(), email=m.email) if m.id == member_id else m
        for m in board.members
    ]
    store.save(board)
    console.print(f"[green]Renamed {member_id}: '{old.name}' -> '{new_name}'[/green]")


@member_app.command("remove")
def member_remove(member_id: str) -> None:
    """Remove a member. Existing assignments to them stop resolving."""
    store = _get_store()
    board = _load(store)
    _find_member(board, member_id)
    board.members = [m for m in board.members if m.id != member_id]
    store.save(board)
    console.print(f"[green]Removed {member_id}.[/green]")


@project_app.command("add")
def project_add(
    name: str,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    responsible: Annotated[Optional[list[str]], typer.Option("--responsible", "-r", help="Responsible member ID")] = None,
    members: Annotated[str, typer.Option("--members", help="Comma-separated member names")] = "",
) -> None:
    """Add a project."""
    store = _get_store()
    board = _load(store)
    responsibles = []
    for mid in responsible or []:
        m = _find_member(board, mid)
        responsibles.append(
            Responsible(member_id=m.id, member_name=m.name, member_email=m.email or None)
        )
    pid = store.generate_id(board.projects, "P")
    board.projects[pid] = Project(
        id=pid,
        name=name,
        end_date=end,
        responsibles=responsibles,
        members=members,
    )
    store.save(board)
    console.print(f"[green]Added project '{name}' as {pid}[/green]")


@project_app.command("list")
def project_list() -> None:
    """List projects with their resolved responsibles and members."""
    board = _load(_get_store())
    if not board.projects:
        console.print("No projects found.")
        return
    directory = MemberDirectory(board.members)
    table = Table(title="Projects")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("End")
    table.add_column("Responsible")
    table.add_column("Members")
    for p in board.projects.values():
        table.add_row(
            p.id,
            p.name,
            p.end_date or "-",
            format_names(resolve_responsible_names(p, directory)),
            format_names(resolve_project_member_names(p, directory)),
        )
    console.print(table)


@task_app.command("add")
def task_add(
    project_id: str,
    name: str,
    assign: Annotated[Optional[list[str]], typer.Option("--assign", "-a", help="Assigned member ID")] = None,
    assignee: Annotated[Optional[str], typer.Option("--assignee", help="Legacy comma-separated assignee names")] = None,
    due: Annotated[Optional[str], typer.Option("--due", help="Due date (YYYY-MM-DD)")] = None,
) -> None:
    """Add a task to a project."""
    store = _get_store()
    board = _load(store)
    if project_id not in board.projects:
        console.print(f"[red]Project {project_id} not found.[/red]")
        raise typer.Exit(1)
    for mid in assign or []:
        _find_member(board, mid)

    tid = store.generate_id(board.tasks, "T")
    board.tasks[tid] = Task(
        id=tid,
        project_id=project_id,
        name=name,
        assigned_members=list(assign or []),
        assignee=assignee,
        due_date=due,
    )
    store.save(board)
    console.print(f"[green]Added '{name}' as {tid}[/green]")


@task_app.command("status")
def task_status(
    task_id: str,
    status: Annotated[str, typer.Argument(help="Target status: not_started, in_progress, done")],
) -> None:
    """Set a task's status."""
    try:
        new_status = TaskStatus(status)
    except ValueError:
        valid = ", ".join(s.value for s in TaskStatus)
        console.print(f"[red]Invalid status '{status}'. Valid statuses: {valid}[/red]")
        raise typer.Exit(1)

    store = _get_store()
    board = _load(store)
    if task_id not in board.tasks:
        console.print(f"[red]Task {task_id} not found.[/red]")
        raise typer.Exit(1)
    board.tasks[task_id].status = new_status
    store.save(board)
    console.print(f"[green]Set {task_id} to {new_status.value}.[/green]")


@task_app.command("assignees")
def task_assignees(task_id: str) -> None:
    """Show who a task is currently assigned to."""
    board = _load(_get_store())
    if task_id not in board.tasks:
        console.print(f"[red]Task {task_id} not found.[/red]")
        raise typer.Exit(1)
    names = resolve_assignee_names(board.tasks[task_id], MemberDirectory(board.members))
    console.print(format_names(names))


@app.command()
def overview(
    sort: Annotated[Optional[str], typer.Option("--sort", "-s", help="dueDateAscending, dueDateDescending, progressDescending, progressAscending")] = None,
    mine: Annotated[Optional[str], typer.Option("--mine", help="Only projects involving this email or member name")] = None,
) -> None:
    """Projects ranked by completion, due date and progress."""
    store = _get_store()
    board = _load(store)

    if sort is not None:
        try:
            mode = SortMode(sort)
        except ValueError:
            valid = ", ".join(m.value for m in SortMode)
            console.print(f"[red]Invalid sort '{sort}'. Valid modes: {valid}[/red]")
            raise typer.Exit(1)
        board.settings["sortMode"] = mode.value
        store.save(board)
    else:
        mode = coerce_sort_mode(board.settings.get("sortMode", settings.DEFAULT_SORT))

    directory = MemberDirectory(board.members)
    projects = list(board.projects.values())
    if mine:
        if "@" in mine:
            email, member = mine, directory.by_email(mine)
            name = member.name if member else None
        else:
            name, member = mine, directory.by_name(mine.strip())
            email = member.email if member else None
        projects = [p for p in projects if is_user_involved(p, email, name)]

    if not projects:
        console.print("No projects found.")
        return

    controller = OverviewController(ProgressAggregator(store), mode=mode)
    state = asyncio.run(controller.refresh(projects))
    if state.error is not None:
        console.print(f"[yellow]Progress unavailable: {state.error}[/yellow]")

    table = Table(title=f"Projects: {SORT_LABELS[mode]}")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("End")
    table.add_column("Responsible")
    table.add_column("Tasks")
    table.add_column("Progress")
    for p in state.projects:
        prog = state.progress_for(p.id)
        pct = prog.progress_percentage if prog else 0
        tasks_str = f"{prog.completed_tasks}/{prog.total_tasks}" if prog else "-"
        table.add_row(
            p.id,
            p.name,
            p.end_date or "-",
            format_names(resolve_responsible_names(p, directory)),
            tasks_str,
            f"{_progress_bar(pct)} {pct}%",
            style="dim" if prog and prog.is_completed else None,
        )
    console.print(table)


@app.command()
def workload(
    start: Annotated[Optional[str], typer.Option("--from", help="Only tasks due on or after this date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--to", help="Only tasks due on or before this date (YYYY-MM-DD)")] = None,
) -> None:
    """Per-member task counts across all projects."""
    start_day = _parse_day(start, "--from")
    end_day = _parse_day(end, "--to")
    board = _load(_get_store())
    directory = MemberDirectory(board.members)
    if not len(directory):
        console.print("No members found.")
        return

    title = "Workload"
    if start_day or end_day:
        title += f" (due {start_day or '...'} to {end_day or '...'})"
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Done")
    table.add_column("Working")
    table.add_column("Todo")
    table.add_column("Completion")
    for row in summarize_workload(board.tasks.values(), directory, start_day, end_day):
        table.add_row(
            row.member.id,
            row.member.name,
            str(row.done),
            str(row.working),
            str(row.todo),
            f"{row.completion_rate}%",
        )
    console.print(table)
