"""
Compliance Engine - Deadline Service

Recurring filing obligations.

An obligation recurs every N months from a reference date:
occurrence k = reference + k x N months (k >= 1). Occurrences are always
computed from the reference, so a 31 January anchor does not drift to the
28th after February.

Two dates are tracked for every obligation:
- next due: the first occurrence not strictly before the as-of instant
- last missed: the oldest past occurrence no filing covers

Filings are applied oldest obligation first. Occurrence k is covered by
the earliest unused filing dated after occurrence k-1 (after the reference
date for k = 1); a late filing still covers its occurrence.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from compliance_engine.models.enums import Agency
from compliance_engine.schemas.compliance import BusinessProfile, FilingDeadline, FilingRecord, as_naive_utc
from compliance_engine.services.compliance_penalty_service import PenaltyRule
from compliance_engine.utils.error_handling import InvalidIntervalException

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


# ===========================================
# DATE ARITHMETIC
# ===========================================

def _check_interval(interval_months: int) -> None:
    if not isinstance(interval_months, int) or isinstance(interval_months, bool) or interval_months <= 0:
        raise InvalidIntervalException(interval_months)


def occurrence(reference: datetime, interval_months: int, k: int) -> datetime:
    """The k-th occurrence after reference."""
    return reference + relativedelta(months=k * interval_months)


def next_occurrence(reference: datetime, interval_months: int, now: datetime) -> datetime:
    """
    First occurrence reference + k x interval (k >= 1) not strictly before now.

    Raises:
        InvalidIntervalException: interval is not a positive number of months
    """
    _check_interval(interval_months)

    months_elapsed = (now.year - reference.year) * 12 + (now.month - reference.month)
    k = max(1, months_elapsed // interval_months - 1)
    due = occurrence(reference, interval_months, k)
    while due < now:
        k += 1
        due = occurrence(reference, interval_months, k)
    return due


def days_until(due: datetime, now: datetime) -> int:
    """ceil((due - now) / 1 day); negative once due has passed."""
    delta = due - now
    whole_days = delta // ONE_DAY
    return whole_days + (1 if delta % ONE_DAY else 0)


def past_occurrences(reference: datetime, interval_months: int, now: datetime) -> List[datetime]:
    """Every occurrence strictly before now, oldest first."""
    _check_interval(interval_months)
    occurrences = []
    k = 1
    due = occurrence(reference, interval_months, k)
    while due < now:
        occurrences.append(due)
        k += 1
        due = occurrence(reference, interval_months, k)
    return occurrences


@dataclass
class ObligationStatus:
    """Where one recurring obligation stands as of an instant."""
    next_due: datetime
    missed: List[datetime] = field(default_factory=list)
    last_filed: Optional[datetime] = None

    @property
    def is_overdue(self) -> bool:
        return bool(self.missed)

    @property
    def last_missed(self) -> Optional[datetime]:
        """Oldest occurrence still unfiled."""
        return self.missed[0] if self.missed else None


def track_obligation(
    reference: datetime,
    interval_months: int,
    now: datetime,
    filed_dates: Iterable[datetime] = (),
) -> ObligationStatus:
    """Match filings to past occurrences and roll the due date forward."""
    filings = sorted(filed_dates)
    missed = []
    index = 0
    window_start = reference

    for due in past_occurrences(reference, interval_months, now):
        while index < len(filings) and filings[index] <= window_start:
            index += 1
        if index < len(filings) and filings[index] <= now:
            index += 1
        else:
            missed.append(due)
        window_start = due

    return ObligationStatus(
        next_due=next_occurrence(reference, interval_months, now),
        missed=missed,
        last_filed=max((f for f in filings if f <= now), default=None),
    )


# ===========================================
# DEADLINE RULES
# ===========================================

def always(profile: BusinessProfile) -> bool:
    return True


def zero_base(profile: BusinessProfile) -> Decimal:
    return Decimal("0")


@dataclass(frozen=True)
class DeadlineRule:
    """
    One recurring obligation an agency imposes.

    anchor maps the registration date to the reference date occurrences are
    counted from; applies_to decides whether a business has the obligation;
    penalty_base estimates the per-occurrence liability percentage
    penalties accrue on.
    """
    requirement_id: str
    agency: Agency
    filing_type: str
    description: str
    interval_months: int
    anchor: Callable[[datetime], datetime]
    penalty: PenaltyRule
    applies_to: Callable[[BusinessProfile], bool] = always
    penalty_base: Callable[[BusinessProfile], Decimal] = zero_base


class DeadlineService:
    """Turns deadline rules into FilingDeadline values for one business."""

    def compute_deadline(
        self,
        rule: DeadlineRule,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> Optional[FilingDeadline]:
        """
        Deadline for one rule, or None when the business has no such
        obligation (unregistered, or the rule does not apply).
        """
        if profile.registration_date is None or not rule.applies_to(profile):
            return None

        as_of = as_naive_utc(as_of)
        reference = rule.anchor(profile.registration_date)
        filed_dates = [
            record.filed_date
            for record in filing_history
            if record.matches(rule.agency, rule.filing_type)
        ]
        status = track_obligation(reference, rule.interval_months, as_of, filed_dates)

        days_late = [days_until(as_of, missed) for missed in status.missed]
        accrual = rule.penalty.accrue(days_late, rule.penalty_base(profile))

        if status.is_overdue:
            logger.debug(
                f"{rule.requirement_id} overdue for {profile.business_id}: "
                f"{len(status.missed)} missed since {status.last_missed:%Y-%m-%d}"
            )

        return FilingDeadline(
            requirement_id=rule.requirement_id,
            agency=rule.agency,
            filing_type=rule.filing_type,
            description=rule.description,
            due_date=status.next_due,
            days_until_due=days_until(status.next_due, as_of),
            is_overdue=status.is_overdue,
            last_missed_date=status.last_missed,
            days_overdue=days_late[0] if days_late else 0,
            missed_occurrences=len(status.missed),
            last_filed_date=status.last_filed,
            penalty=accrual,
        )

    def compute_deadlines(
        self,
        rules: Iterable[DeadlineRule],
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> List[FilingDeadline]:
        deadlines = []
        for rule in rules:
            deadline = self.compute_deadline(rule, profile, filing_history, as_of)
            if deadline is not None:
                deadlines.append(deadline)
        return sorted(deadlines, key=lambda d: d.due_date)


# ===========================================
# COMMON ANCHORS
# ===========================================

def registration_anniversary(registration_date: datetime) -> datetime:
    """Occurrences fall on the registration date's anniversaries."""
    return registration_date


def fifteenth_of_month(registration_date: datetime) -> datetime:
    """Monthly returns fall due on the 15th of the following month."""
    return registration_date.replace(day=15, hour=0, minute=0, second=0, microsecond=0)


def fifteenth_of_quarter(registration_date: datetime) -> datetime:
    """Quarterly returns fall due on the 15th after each calendar quarter."""
    first_month = 3 * ((registration_date.month - 1) // 3) + 1
    return fifteenth_of_month(registration_date).replace(month=first_month)


def fiscal_year_end(registration_date: datetime) -> datetime:
    """Annual income tax returns fall due on 31 March after each year end."""
    return registration_date.replace(month=3, day=31, hour=0, minute=0, second=0, microsecond=0)
