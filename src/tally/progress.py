"""Per-project completion counts with last-request-wins publication.

Every ``compute_all`` call takes a token from a counter owned by the
aggregator. Fetches for one call run concurrently and are joined; once
joined, the result is published only if no newer call has been issued in
the meantime. Older results that land late are discarded, never merged.
There is no locking and no cancellation of in-flight fetches.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from tally.errors import StoreUnavailableError
from tally.log import get_logger
from tally.models import ProjectProgress, Task, TaskStatus

logger = get_logger(__name__)


class TaskSource(Protocol):
    """Persistence collaborator that can list a project's tasks."""

    async def get_tasks_by_project_id(self, project_id: str) -> list[Task]: ...


def count_progress(project_id: str, tasks: Iterable[Task]) -> ProjectProgress:
    total = 0
    completed = 0
    for task in tasks:
        total += 1
        if task.status == TaskStatus.DONE:
            completed += 1
    return ProjectProgress.from_counts(project_id, total, completed)


@dataclass(frozen=True)
class AggregationResult:
    """Outcome of one ``compute_all`` call.

    ``stale`` results were superseded by a newer call; they carry no
    progress and were not published. ``error`` is set when the whole batch was aborted; the
    progress map is then empty and the previous aggregate stays published.
    """

    token: int
    progress: dict[str, ProjectProgress] = field(default_factory=dict)
    stale: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return not self.stale and self.error is None


class ProgressAggregator:
    """Computes and caches :class:`ProjectProgress` for a set of projects."""

    def __init__(self, source: TaskSource):
        self._source = source
        self._counter = itertools.count(1)
        self._latest_token = 0
        self._latest: dict[str, ProjectProgress] = {}

    @property
    def latest_token(self) -> int:
        return self._latest_token

    @property
    def latest(self) -> dict[str, ProjectProgress]:
        """The last published aggregate (a copy)."""
        return dict(self._latest)

    def get(self, project_id: str) -> ProjectProgress | None:
        return self._latest.get(project_id)

    async def _fetch_one(self, project_id: str) -> ProjectProgress:
        tasks = await self._source.get_tasks_by_project_id(project_id)
        return count_progress(project_id, tasks)

    async def compute_all(self, project_ids: Iterable[str]) -> AggregationResult:
        token = next(self._counter)
        self._latest_token = token
        ids = list(dict.fromkeys(project_ids))

        outcomes = await asyncio.gather(
            *(self._fetch_one(pid) for pid in ids), return_exceptions=True
        )

        progress: dict[str, ProjectProgress] = {}
        abort: StoreUnavailableError | None = None
        for pid, outcome in zip(ids, outcomes):
            if isinstance(outcome, StoreUnavailableError):
                abort = abort or outcome
            elif isinstance(outcome, Exception):
                logger.warning("Progress fetch failed for project %s: %s", pid, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                progress[pid] = outcome

        if token != self._latest_token:
            logger.debug(
                "Discarding stale aggregate %d (latest is %d)", token, self._latest_token
            )
            return AggregationResult(token=token, stale=True)

        if abort is not None:
            logger.error("Progress aggregation aborted: %s", abort)
            return AggregationResult(token=token, error=abort)

        self._latest = progress
        return AggregationResult(token=token, progress=dict(progress))
