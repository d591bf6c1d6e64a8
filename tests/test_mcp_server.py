import json

import pytest

from tally.mcp_server import get_assignees, get_overview, get_workload, set_sort_mode
from tally.models import Member, Project, Task, TaskStatus
from tally.persistence import Board, Store


def _seed():
    Store().save(Board(
        members=[Member("M-1", "Alice"), Member("M-2", "Bob")],
        projects={
            "P-1": Project("P-1", "Alpha", end_date="2026-03-01"),
            "P-2": Project("P-2", "Beta", end_date="2026-02-01"),
        },
        tasks={
            "T-1": Task("T-1", "P-1", "a", status=TaskStatus.DONE, assigned_members=["M-1"], due_date="2026-02-10"),
            "T-2": Task("T-2", "P-1", "b", assigned_members=["M-2", "M-9"], due_date="2026-02-20"),
            "T-3": Task("T-3", "P-2", "c", assignee="Bob"),
        },
    ))


@pytest.mark.anyio
async def test_overview_and_sort_mode(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _seed()

    data = json.loads(await get_overview())
    assert data["sortMode"] == "dueDateAscending"
    assert [p["id"] for p in data["projects"]] == ["P-2", "P-1"]
    assert data["projects"][1]["progress"]["progressPercentage"] == 50

    assert "progressDescending" in set_sort_mode("progressDescending")
    data = json.loads(await get_overview())
    assert [p["id"] for p in data["projects"]] == ["P-1", "P-2"]

    assert set_sort_mode("nope").startswith("Error:")


@pytest.mark.anyio
async def test_overview_reports_malformed_board(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "tally.json").write_text('{"projects": []}')

    assert (await get_overview()).startswith("Error: Malformed")


def test_assignees_and_workload(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _seed()

    assert json.loads(get_assignees("T-2")) == ["Bob"]
    assert get_assignees("T-404").startswith("Error:")

    rows = {r["id"]: r for r in json.loads(get_workload())}
    assert rows["M-1"]["done"] == 1
    assert rows["M-2"]["todo"] == 2


def test_workload_due_window(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _seed()

    rows = {r["id"]: r for r in json.loads(get_workload(start="2026-02-10", end="2026-02-10"))}
    assert rows["M-1"]["done"] == 1
    assert rows["M-2"]["todo"] == 0

    rows = {r["id"]: r for r in json.loads(get_workload(start="2026-02-11"))}
    assert rows["M-1"]["done"] == 0
    assert rows["M-2"]["todo"] == 1

    assert get_workload(end="next week").startswith("Error: invalid date")
