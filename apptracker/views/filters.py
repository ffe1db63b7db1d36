"""List filters and the memoized derived view.

A filter mode is ``"All"``, ``"FollowUp"`` (overdue follow-ups), or a status
display value such as ``"Offer"``.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from apptracker.core.schemas import ApplicationStats, ApplicationStatus, JobApplication
from apptracker.views.stats import compute_stats, is_overdue, utc_now

logger = logging.getLogger(__name__)

ALL = "All"
FOLLOW_UP = "FollowUp"

FILTER_MODES: tuple[str, ...] = (ALL, FOLLOW_UP, *(s.value for s in ApplicationStatus))


class Filter(Protocol):
    """Callable that narrows a record list."""

    def __call__(self, records: Sequence[JobApplication]) -> Sequence[JobApplication]: ...


class PassThroughFilter:
    """Returns the input unchanged (the same sequence object)."""

    def __call__(self, records: Sequence[JobApplication]) -> Sequence[JobApplication]:
        return records


class OverdueFollowUpFilter:
    """Keep records whose follow-up date has passed at evaluation time."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now

    def __call__(self, records: Sequence[JobApplication]) -> Sequence[JobApplication]:
        now = self._now or utc_now()
        return [r for r in records if is_overdue(r.follow_up_date, now)]


class StatusFilter:
    """Keep records whose status equals the given display value exactly."""

    def __init__(self, status: str) -> None:
        self._status = status

    def __call__(self, records: Sequence[JobApplication]) -> Sequence[JobApplication]:
        return [r for r in records if r.status.value == self._status]


def build_filter(mode: str, now: datetime | None = None) -> Filter:
    if mode == ALL:
        return PassThroughFilter()
    if mode == FOLLOW_UP:
        return OverdueFollowUpFilter(now)
    if mode not in FILTER_MODES:
        logger.debug("Unknown filter mode '%s'; nothing will match", mode)
    return StatusFilter(mode)


def filter_applications(
    records: Sequence[JobApplication],
    mode: str,
    now: datetime | None = None,
) -> Sequence[JobApplication]:
    """Apply one filter mode to a record list."""
    return build_filter(mode, now)(records)


class DerivedView:
    """Stats and filtered subsets, memoized on the identity of the record list.

    Overdue-dependent results are cached too; call ``invalidate()`` to force
    re-evaluation against the clock without a new list.
    """

    def __init__(self) -> None:
        self._source: Sequence[JobApplication] | None = None
        self._stats: ApplicationStats | None = None
        self._filtered: dict[str, Sequence[JobApplication]] = {}

    def stats(self, records: Sequence[JobApplication]) -> ApplicationStats:
        self._sync(records)
        if self._stats is None:
            self._stats = compute_stats(records)
        return self._stats

    def filtered(self, records: Sequence[JobApplication], mode: str) -> Sequence[JobApplication]:
        self._sync(records)
        if mode not in self._filtered:
            self._filtered[mode] = filter_applications(records, mode)
        return self._filtered[mode]

    def invalidate(self) -> None:
        self._source = None
        self._stats = None
        self._filtered.clear()

    def _sync(self, records: Sequence[JobApplication]) -> None:
        if records is not self._source:
            self.invalidate()
            self._source = records
