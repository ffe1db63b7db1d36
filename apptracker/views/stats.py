"""Aggregate statistics over the current record list.

Pure functions; "overdue" is evaluated against the instant passed in (or the
current UTC time), so results change as the clock moves even when the list
does not.
"""

from collections.abc import Sequence
from datetime import datetime, timezone

from apptracker.core.schemas import (
    INTERVIEW_STATUSES,
    ApplicationStats,
    ApplicationStatus,
    JobApplication,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_overdue(follow_up: datetime | None, now: datetime | None = None) -> bool:
    """True iff a follow-up date is present and strictly before *now*."""
    if follow_up is None:
        return False
    return follow_up < (now or utc_now())


def compute_stats(records: Sequence[JobApplication], now: datetime | None = None) -> ApplicationStats:
    """Counts by status, overdue follow-ups, and the offer rate (one decimal).

    Interviews count the Interviewing and Technical Screen statuses only.
    """
    now = now or utc_now()
    total = len(records)
    offers = sum(1 for r in records if r.status is ApplicationStatus.OFFER)
    offer_rate = round(offers / total * 100, 1) if total else 0.0

    return ApplicationStats(
        total=total,
        interviews=sum(1 for r in records if r.status in INTERVIEW_STATUSES),
        offers=offers,
        rejected=sum(1 for r in records if r.status is ApplicationStatus.REJECTED),
        overdue_follow_ups=sum(1 for r in records if is_overdue(r.follow_up_date, now)),
        offer_rate=offer_rate,
    )
