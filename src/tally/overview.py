"""Projects overview: aggregate, then rank, replacing progress atomically."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from tally.log import get_logger
from tally.models import Project, ProjectProgress, SortMode
from tally.progress import AggregationResult, ProgressAggregator
from tally.ranking import rank_projects

logger = get_logger(__name__)


@dataclass(frozen=True)
class OverviewState:
    projects: list[Project] = field(default_factory=list)
    progress: dict[str, ProjectProgress] = field(default_factory=dict)
    mode: SortMode = SortMode.DUE_DATE_ASC
    error: Exception | None = None

    def progress_for(self, project_id: str) -> ProjectProgress | None:
        return self.progress.get(project_id)


class OverviewController:
    """Keeps an ordered project list in step with the aggregator.

    A stale aggregation leaves the current state alone; the newer call
    will replace it when it lands. A failed batch keeps the previous
    progress map and records the error.
    """

    def __init__(self, aggregator: ProgressAggregator, mode: SortMode = SortMode.DUE_DATE_ASC):
        self.aggregator = aggregator
        self.state = OverviewState(mode=mode)

    async def refresh(self, projects: Iterable[Project]) -> OverviewState:
        projects = list(projects)
        result: AggregationResult = await self.aggregator.compute_all(
            p.id for p in projects
        )
        if result.stale:
            return self.state

        if result.error is not None:
            wanted = {p.id for p in projects}
            progress = {
                pid: p for pid, p in self.state.progress.items() if pid in wanted
            }
            logger.warning("Keeping previous progress after failed refresh")
        else:
            progress = result.progress

        self.state = OverviewState(
            projects=rank_projects(projects, progress, self.state.mode),
            progress=progress,
            mode=self.state.mode,
            error=result.error,
        )
        return self.state

    def set_mode(self, mode: SortMode) -> OverviewState:
        """Re-rank the current projects under *mode* without refetching."""
        self.state = OverviewState(
            projects=rank_projects(self.state.projects, self.state.progress, mode),
            progress=self.state.progress,
            mode=mode,
            error=self.state.error,
        )
        return self.state
