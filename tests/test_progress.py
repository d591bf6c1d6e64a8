import asyncio

import pytest

from tally.errors import StoreUnavailableError
from tally.models import Task, TaskStatus
from tally.persistence import Store
from tally.progress import ProgressAggregator, count_progress


def _tasks(project_id: str, total: int, done: int) -> list[Task]:
    return [
        Task(
            id=f"{project_id}-{i}",
            project_id=project_id,
            name=f"task {i}",
            status=TaskStatus.DONE if i < done else TaskStatus.IN_PROGRESS,
        )
        for i in range(total)
    ]


class FakeSource:
    def __init__(self, tasks: dict[str, list[Task]], failing: set[str] = frozenset(), offline: bool = False):
        self.tasks = tasks
        self.failing = failing
        self.offline = offline
        self.calls: list[str] = []

    async def get_tasks_by_project_id(self, project_id: str) -> list[Task]:
        self.calls.append(project_id)
        await asyncio.sleep(0)
        if self.offline:
            raise StoreUnavailableError("offline")
        if project_id in self.failing:
            raise RuntimeError(f"boom {project_id}")
        return self.tasks.get(project_id, [])


class GatedSource:
    """Each project's fetch waits until the test releases it."""

    def __init__(self, tasks: dict[str, list[Task]], offline: set[str] = frozenset()):
        self.tasks = tasks
        self.offline = offline
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, project_id: str) -> asyncio.Event:
        return self.gates.setdefault(project_id, asyncio.Event())

    async def get_tasks_by_project_id(self, project_id: str) -> list[Task]:
        await self.gate(project_id).wait()
        if project_id in self.offline:
            raise StoreUnavailableError("offline")
        return self.tasks[project_id]


def test_count_progress():
    p = count_progress("P-1", _tasks("P-1", 4, 1))
    assert (p.total_tasks, p.completed_tasks, p.progress_percentage) == (4, 1, 25)
    assert count_progress("P-2", []).progress_percentage == 0


@pytest.mark.anyio
async def test_compute_all_counts_each_project():
    source = FakeSource({"a": _tasks("a", 4, 1), "b": _tasks("b", 2, 2)})
    agg = ProgressAggregator(source)

    result = await agg.compute_all({"a", "b", "c"})

    assert result.ok
    assert result.progress["a"].progress_percentage == 25
    assert result.progress["b"].progress_percentage == 100
    assert result.progress["c"].total_tasks == 0
    assert result.progress["c"].progress_percentage == 0
    assert agg.latest == result.progress


@pytest.mark.anyio
async def test_compute_all_is_idempotent():
    source = FakeSource({"a": _tasks("a", 3, 1)})
    agg = ProgressAggregator(source)

    first = await agg.compute_all({"a"})
    second = await agg.compute_all({"a"})

    assert first.progress == second.progress
    assert second.token > first.token


@pytest.mark.anyio
async def test_empty_set_publishes_empty_map():
    source = FakeSource({"a": _tasks("a", 1, 1)})
    agg = ProgressAggregator(source)
    await agg.compute_all({"a"})

    result = await agg.compute_all(set())

    assert result.ok
    assert result.progress == {}
    assert agg.latest == {}


@pytest.mark.anyio
async def test_failed_project_is_omitted():
    source = FakeSource({"a": _tasks("a", 2, 1), "b": _tasks("b", 2, 2)}, failing={"b"})
    agg = ProgressAggregator(source)

    result = await agg.compute_all(["a", "b"])

    assert result.ok
    assert set(result.progress) == {"a"}


@pytest.mark.anyio
async def test_offline_batch_returns_error_and_keeps_previous_aggregate():
    source = FakeSource({"a": _tasks("a", 2, 1)})
    agg = ProgressAggregator(source)
    await agg.compute_all(["a"])
    previous = agg.latest

    source.offline = True
    result = await agg.compute_all(["a"])

    assert result.progress == {}
    assert isinstance(result.error, StoreUnavailableError)
    assert not result.ok
    assert agg.latest == previous


@pytest.mark.anyio
async def test_malformed_store_aborts_the_batch(tmp_path):
    path = tmp_path / "board.json"
    path.write_text('{"projects": [], "tasks": {}}')
    agg = ProgressAggregator(Store(path))

    result = await agg.compute_all(["P-1", "P-2"])

    assert isinstance(result.error, StoreUnavailableError)
    assert result.progress == {}
    assert agg.latest == {}


@pytest.mark.anyio
async def test_stale_result_is_discarded():
    source = GatedSource({
        "a": _tasks("a", 4, 1),
        "b": _tasks("b", 2, 1),
        "c": _tasks("c", 5, 5),
    })
    agg = ProgressAggregator(source)

    first = asyncio.create_task(agg.compute_all(["a", "b"]))
    await asyncio.sleep(0)
    second = asyncio.create_task(agg.compute_all(["c"]))
    await asyncio.sleep(0)

    # The newer call lands first ...
    source.gate("c").set()
    newer = await second
    # ... and the older one lands afterwards.
    source.gate("a").set()
    source.gate("b").set()
    older = await first

    assert newer.ok
    assert set(newer.progress) == {"c"}
    assert older.stale
    assert older.progress == {}
    assert agg.latest == newer.progress
    assert agg.latest_token == newer.token


@pytest.mark.anyio
async def test_older_call_landing_first_is_still_discarded():
    source = GatedSource({"a": _tasks("a", 1, 0), "c": _tasks("c", 1, 1)})
    agg = ProgressAggregator(source)

    first = asyncio.create_task(agg.compute_all(["a"]))
    await asyncio.sleep(0)
    second = asyncio.create_task(agg.compute_all(["c"]))
    await asyncio.sleep(0)
    source.gate("a").set()
    older = await first
    published_in_between = agg.latest
    source.gate("c").set()
    newer = await second

    assert older.stale
    assert published_in_between == {}
    assert agg.latest == newer.progress
    assert set(newer.progress) == {"c"}


@pytest.mark.anyio
async def test_superseded_offline_batch_is_stale_not_error():
    source = GatedSource({"c": _tasks("c", 2, 1)}, offline={"a"})
    agg = ProgressAggregator(source)

    first = asyncio.create_task(agg.compute_all(["a"]))
    await asyncio.sleep(0)
    second = asyncio.create_task(agg.compute_all(["c"]))
    await asyncio.sleep(0)

    source.gate("c").set()
    newer = await second
    source.gate("a").set()
    older = await first

    assert older.stale
    assert older.error is None
    assert older.progress == {}
    assert newer.ok
    assert agg.latest == newer.progress
    assert agg.latest_token == newer.token


@pytest.mark.anyio
async def test_fetches_run_concurrently():
    source = GatedSource({"a": _tasks("a", 1, 0), "b": _tasks("b", 1, 1)})
    agg = ProgressAggregator(source)

    call = asyncio.create_task(agg.compute_all(["a", "b"]))
    await asyncio.sleep(0)
    # Releasing in reverse order only works if both fetches are in flight.
    source.gate("b").set()
    source.gate("a").set()
    result = await call

    assert set(result.progress) == {"a", "b"}
