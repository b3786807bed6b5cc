"""
Compliance Engine - Deadline Tests

Recurrence arithmetic, filing matching and FilingDeadline construction.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from compliance_engine.models.enums import Agency, BusinessType
from compliance_engine.schemas.compliance import BusinessProfile, FilingRecord, as_naive_utc
from compliance_engine.services.compliance_penalty_service import FlatRatePenaltyRule
from compliance_engine.services.deadline_service import (
    DeadlineRule,
    DeadlineService,
    days_until,
    fifteenth_of_month,
    fifteenth_of_quarter,
    fiscal_year_end,
    next_occurrence,
    past_occurrences,
    track_obligation,
)
from compliance_engine.utils.error_handling import ErrorCode, InvalidIntervalException

from conftest import AS_OF, monthly_filings


class TestNextOccurrence:
    """Occurrences are counted from the reference, never from each other."""

    def test_monthly_from_mid_month(self):
        """A mid-month reference recurs on the same day each month."""
        due = next_occurrence(datetime(2024, 1, 15), 1, AS_OF)

        assert due == datetime(2024, 7, 15)

    def test_month_end_does_not_drift(self):
        """A 31st reference returns to the 31st after February."""
        due = next_occurrence(datetime(2024, 1, 31), 1, datetime(2024, 3, 1))

        assert due == datetime(2024, 3, 31)

    def test_annual(self):
        """Annual obligations fall on the reference anniversary."""
        due = next_occurrence(datetime(2024, 2, 1), 12, AS_OF)

        assert due == datetime(2025, 2, 1)

    def test_occurrence_at_now_is_not_past(self):
        """An occurrence exactly at now is still the next one."""
        now = datetime(2024, 3, 15)

        assert next_occurrence(datetime(2024, 1, 15), 1, now) == now

    def test_reference_in_future_gives_first_occurrence(self):
        """A future reference yields its first occurrence."""
        due = next_occurrence(datetime(2024, 9, 1), 3, AS_OF)

        assert due == datetime(2024, 12, 1)

    def test_long_history(self):
        """Decades of history resolve without stepping one year at a time."""
        due = next_occurrence(datetime(2001, 6, 30), 12, AS_OF)

        assert due == datetime(2024, 6, 30)

    @pytest.mark.parametrize("interval", [0, -1, True, 1.5])
    def test_invalid_interval(self, interval):
        """Only positive whole months are valid intervals."""
        with pytest.raises(InvalidIntervalException) as exc_info:
            next_occurrence(datetime(2024, 1, 15), interval, AS_OF)

        assert exc_info.value.code == ErrorCode.INVALID_INTERVAL


class TestDaysUntil:
    """Partial days round up."""

    def test_future(self):
        """A day and a half ahead counts as two days."""
        assert days_until(datetime(2024, 6, 22), datetime(2024, 6, 20, 12)) == 2

    def test_past(self):
        """A day and a half behind counts as minus one."""
        assert days_until(datetime(2024, 6, 19), datetime(2024, 6, 20, 12)) == -1

    def test_same_instant(self):
        """The same instant is zero days away."""
        assert days_until(AS_OF, AS_OF) == 0

    def test_whole_days(self):
        """Whole-day gaps are exact."""
        assert days_until(datetime(2024, 7, 15), datetime(2024, 6, 20)) == 25


class TestTrackObligation:
    """Filings are matched to past occurrences oldest first."""

    def test_all_filed(self):
        """Monthly filings leave nothing missed."""
        reference = datetime(2024, 1, 15)
        filings = [f.filed_date for f in monthly_filings(Agency.GRA, "x", reference, 5)]
        status = track_obligation(reference, 1, AS_OF, filings)

        assert not status.is_overdue
        assert status.next_due == datetime(2024, 7, 15)
        assert status.last_filed == datetime(2024, 6, 10)

    def test_nothing_filed(self):
        """Without filings every past occurrence is missed."""
        status = track_obligation(datetime(2024, 1, 15), 1, AS_OF)

        assert status.missed == past_occurrences(datetime(2024, 1, 15), 1, AS_OF)
        assert len(status.missed) == 5
        assert status.last_missed == datetime(2024, 2, 15)
        assert status.last_filed is None

    def test_late_filing_covers_oldest_occurrence(self):
        """A late filing covers the oldest open occurrence."""
        status = track_obligation(datetime(2024, 1, 15), 1, AS_OF, [datetime(2024, 5, 1)])

        assert status.last_missed == datetime(2024, 3, 15)
        assert len(status.missed) == 4

    def test_filing_before_reference_is_ignored(self):
        """Filings before the reference cover nothing."""
        status = track_obligation(datetime(2024, 1, 15), 1, AS_OF, [datetime(2024, 1, 1)])

        assert len(status.missed) == 5

    def test_future_filing_is_ignored(self):
        """Filings after now are not counted."""
        status = track_obligation(datetime(2024, 1, 15), 12, AS_OF, [datetime(2024, 8, 1)])

        assert not status.is_overdue
        assert status.last_filed is None

    def test_next_due_rolls_forward_when_overdue(self):
        """The next due date moves on while older ones stay missed."""
        status = track_obligation(datetime(2023, 6, 1), 12, AS_OF)

        assert status.is_overdue
        assert status.next_due == datetime(2025, 6, 1)
        assert status.last_missed == datetime(2024, 6, 1)


class TestAnchors:
    """Reference dates derived from the registration date."""

    def test_fifteenth_of_month(self):
        """Monthly returns anchor on the 15th of the registration month."""
        assert fifteenth_of_month(datetime(2024, 1, 10, 9, 30)) == datetime(2024, 1, 15)

    def test_fifteenth_of_quarter(self):
        """Quarterly returns anchor on the 15th of the quarter's first month."""
        assert fifteenth_of_quarter(datetime(2024, 5, 2)) == datetime(2024, 4, 15)

    def test_fiscal_year_end(self):
        """Annual tax returns anchor on the fiscal year end."""
        assert fiscal_year_end(datetime(2024, 2, 1)) == datetime(2024, 3, 31)


def _rule(applies_to=None) -> DeadlineRule:
    extra = {"applies_to": applies_to} if applies_to else {}
    return DeadlineRule(
        requirement_id="GRA_WHT_MONTHLY",
        agency=Agency.GRA,
        filing_type="Withholding Tax",
        description="Monthly withholding tax remittance",
        interval_months=1,
        anchor=fifteenth_of_month,
        penalty=FlatRatePenaltyRule(daily_rate=Decimal("1000"), maximum=Decimal("100000")),
        **extra,
    )


class TestDeadlineService:
    """FilingDeadline values for one business."""

    def test_overdue_deadline(self, employer):
        """Five missed months accrue a capped flat penalty."""
        deadline = DeadlineService().compute_deadline(_rule(), employer, [], AS_OF)

        assert deadline.is_overdue
        assert deadline.missed_occurrences == 5
        assert deadline.last_missed_date == datetime(2024, 2, 15)
        assert deadline.days_overdue == 127
        assert deadline.due_date == datetime(2024, 7, 15)
        assert deadline.days_until_due == 25
        assert deadline.penalty.current_accrued == Decimal("100000")

    def test_filing_type_matches_case_insensitively(self, employer):
        """Filing types match regardless of case."""
        history = monthly_filings(Agency.GRA, "withholding tax", datetime(2024, 1, 15), 5)
        deadline = DeadlineService().compute_deadline(_rule(), employer, history, AS_OF)

        assert not deadline.is_overdue
        assert deadline.days_overdue == 0
        assert deadline.penalty.current_accrued == Decimal("0")

    def test_other_agency_filings_do_not_count(self, employer):
        """Filings with another agency do not cover the obligation."""
        history = monthly_filings(Agency.NIS, "Withholding Tax", datetime(2024, 1, 15), 5)
        deadline = DeadlineService().compute_deadline(_rule(), employer, history, AS_OF)

        assert deadline.is_overdue

    def test_unregistered_business_has_no_deadline(self, unregistered_business):
        """No registration date means no deadline."""
        assert DeadlineService().compute_deadline(_rule(), unregistered_business, [], AS_OF) is None

    def test_rule_not_applicable(self, employer):
        """Rules that do not apply to the business are skipped."""
        rule = _rule(applies_to=lambda profile: False)

        assert DeadlineService().compute_deadline(rule, employer, [], AS_OF) is None

    def test_deadlines_sorted_by_due_date(self, compliant_corporation):
        """Deadlines come back earliest first."""
        annual = DeadlineRule(
            requirement_id="ANNUAL",
            agency=Agency.DCRA,
            filing_type="Annual Return",
            description="Annual return",
            interval_months=12,
            anchor=lambda d: d,
            penalty=FlatRatePenaltyRule(daily_rate=Decimal("100")),
        )
        deadlines = DeadlineService().compute_deadlines(
            [annual, _rule()], compliant_corporation, [], AS_OF,
        )

        assert [d.requirement_id for d in deadlines] == ["GRA_WHT_MONTHLY", "ANNUAL"]

    def test_date_only_filing_is_promoted(self):
        """A plain filing date becomes midnight."""
        record = FilingRecord(agency=Agency.GRA, filing_type="VAT Return", filed_date=date(2024, 3, 10))

        assert record.filed_date == datetime(2024, 3, 10)

    def test_date_only_registration_is_promoted(self):
        """A plain registration date becomes midnight."""
        profile = BusinessProfile(
            business_id="b1", business_type=BusinessType.CORPORATION, registration_date=date(2024, 2, 1),
        )

        assert profile.registration_date == datetime(2024, 2, 1)


class TestInstantNormalisation:
    """Aware instants are held as naive UTC."""

    def test_utc_suffixed_filing_date(self):
        """An ISO string ending in Z is stored without tzinfo."""
        record = FilingRecord(agency=Agency.GRA, filing_type="VAT Return", filed_date="2024-03-10T00:00:00Z")

        assert record.filed_date == datetime(2024, 3, 10)
        assert record.filed_date.tzinfo is None

    def test_offset_registration_date_converted_to_utc(self):
        """A registration at 22:00 UTC-4 is 02:00 UTC the next day."""
        profile = BusinessProfile(
            business_id="b1",
            business_type=BusinessType.CORPORATION,
            registration_date=datetime(2024, 1, 31, 22, tzinfo=timezone(timedelta(hours=-4))),
        )

        assert profile.registration_date == datetime(2024, 2, 1, 2)

    def test_naive_values_unchanged(self):
        """Naive instants are already UTC."""
        assert as_naive_utc(AS_OF) is AS_OF
        assert as_naive_utc(None) is None

    def test_aware_as_of_against_date_only_registration(self):
        """A date-only registration and a UTC as_of give the naive deadline."""
        profile = BusinessProfile(
            business_id="b1",
            business_type=BusinessType.PARTNERSHIP,
            registration_date=date(2024, 1, 10),
            employee_count=4,
        )
        service = DeadlineService()

        aware = service.compute_deadline(_rule(), profile, [], AS_OF.replace(tzinfo=timezone.utc))
        naive = service.compute_deadline(_rule(), profile, [], AS_OF)

        assert aware == naive
        assert aware.days_until_due == 25
