"""Exceptions raised across tally."""

from __future__ import annotations


class TallyError(Exception):
    """Base class for tally errors."""


class StoreUnavailableError(TallyError):
    """The backing store can't be reached at all (offline, unreadable).

    Raised by a task source to abort a whole aggregation batch rather than
    a single project.
    """
