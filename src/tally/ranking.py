"""Deterministic display order for projects.

Order, applied as one stable comparator:

1. incomplete projects before completed ones (progress == 100);
2. the selected sort mode;
3. end date ascending, missing or unparseable dates last;
4. project name, ignoring accents and case before falling back to them.
"""

from __future__ import annotations

import functools
import unicodedata
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from tally.models import Project, ProjectProgress, SortMode


def parse_end_date(value: str | None) -> float | None:
    """ISO date/datetime -> POSIX timestamp, or None if missing/unparseable.

    Naive values are read as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare_end_date(a: Project, b: Project, ascending: bool) -> int:
    a_time = parse_end_date(a.end_date)
    b_time = parse_end_date(b.end_date)
    if a_time is None and b_time is None:
        return 0
    # Missing dates sort last in both directions.
    if a_time is None:
        return 1
    if b_time is None:
        return -1
    return _cmp(a_time, b_time) if ascending else _cmp(b_time, a_time)


def _name_key(name: str) -> tuple[str, str, str]:
    """Base letters first, then accents, then case with lowercase first."""
    folded = unicodedata.normalize("NFKD", name).casefold()
    base = "".join(c for c in folded if not unicodedata.combining(c))
    return base, folded, name.swapcase()


def _compare_name(a: Project, b: Project) -> int:
    return _cmp(_name_key(a.name or ""), _name_key(b.name or ""))


def _percent(project: Project, progress: Mapping[str, ProjectProgress]) -> int:
    p = progress.get(project.id)
    return p.progress_percentage if p is not None else 0


def compare_projects(
    a: Project,
    b: Project,
    progress: Mapping[str, ProjectProgress],
    mode: SortMode = SortMode.DUE_DATE_ASC,
) -> int:
    a_pct = _percent(a, progress)
    b_pct = _percent(b, progress)

    a_done = a_pct == 100
    b_done = b_pct == 100
    if a_done != b_done:
        return 1 if a_done else -1

    match mode:
        case SortMode.DUE_DATE_DESC:
            result = _compare_end_date(a, b, ascending=False)
        case SortMode.PROGRESS_DESC:
            result = _cmp(b_pct, a_pct)
        case SortMode.PROGRESS_ASC:
            result = _cmp(a_pct, b_pct)
        case _:
            result = _compare_end_date(a, b, ascending=True)
    if result:
        return result

    result = _compare_end_date(a, b, ascending=True)
    if result:
        return result
    return _compare_name(a, b)


def coerce_sort_mode(value: str | SortMode | None) -> SortMode:
    """Parse a stored preference, falling back to due date ascending."""
    try:
        return SortMode(value)
    except ValueError:
        return SortMode.DUE_DATE_ASC


def rank_projects(
    projects: Iterable[Project],
    progress: Mapping[str, ProjectProgress],
    mode: SortMode = SortMode.DUE_DATE_ASC,
) -> list[Project]:
    """Return *projects* sorted for display. The input is left untouched."""
    key = functools.cmp_to_key(lambda a, b: compare_projects(a, b, progress, mode))
    return sorted(projects, key=key)
