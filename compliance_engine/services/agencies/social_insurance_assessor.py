"""
Compliance Engine - NIS (National Insurance Scheme) Assessor

Contribution compliance for employers and the self-employed.

Recurring filings:
- Monthly contributions: employers, due the 15th; 1.5% per month on the
  estimated monthly contributions, capped at GYD 50,000
- Quarterly self-employed contributions: sole proprietors, due the 15th
  after each quarter; GYD 200 per day, capped at GYD 25,000

Scoring (severity only escalates):
- employer without an NIS number: -40, Critical
- -25 per overdue contribution filing (Critical below 60, Major below 80,
  otherwise Minor)
- sole proprietor above the self-employed minimum without an NIS number:
  -30, Major
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.models.enums import Agency, BusinessType, ComplianceLevel, ContributionPeriod
from compliance_engine.schemas.compliance import (
    BusinessProfile,
    ComplianceResult,
    FilingRecord,
    SocialInsuranceBudget,
)
from compliance_engine.services.agencies.base import AgencyAssessor
from compliance_engine.services.compliance_penalty_service import (
    FlatRatePenaltyRule,
    PercentagePenaltyRule,
)
from compliance_engine.services.deadline_service import (
    DeadlineRule,
    fifteenth_of_month,
    fifteenth_of_quarter,
)
from compliance_engine.services.tax_calculators import SocialInsuranceCalculator

logger = logging.getLogger(__name__)

MISSING_REGISTRATION_DEDUCTION = 40
OVERDUE_DEDUCTION = 25
SELF_EMPLOYED_REGISTRATION_DEDUCTION = 30

NIS_FORMS = [
    "Form NIS-1: Employer Registration",
    "Form NIS-2: Employee Registration",
    "Form NIS-3: Monthly Contribution Return",
    "Form NIS-4: Self-Employed Registration",
    "Form NIS-5: Quarterly Self-Employed Contributions",
    "Form NIS-6: Employment Injury Report",
    "Form NIS-7: Maternity Benefit Claim",
]


class SocialInsuranceAssessor(AgencyAssessor):
    """NIS contribution compliance."""

    agency = Agency.NIS

    def deadline_rules(self, profile: BusinessProfile, tables: RateTables) -> List[DeadlineRule]:
        calculator = SocialInsuranceCalculator(tables)
        monthly = tables.penalty_for("NIS_MONTHLY_CONTRIBUTIONS")
        quarterly = tables.penalty_for("NIS_QUARTERLY_SELF_EMPLOYED")
        return [
            DeadlineRule(
                requirement_id="NIS_MONTHLY_CONTRIBUTIONS",
                agency=self.agency,
                filing_type="Monthly Contributions",
                description="Monthly NIS contributions for employees",
                interval_months=1,
                anchor=fifteenth_of_month,
                penalty=PercentagePenaltyRule(monthly_rate=monthly.monthly_rate, maximum=monthly.maximum),
                applies_to=lambda p: p.has_employees,
                penalty_base=calculator.estimate_monthly_employer_remittance,
            ),
            DeadlineRule(
                requirement_id="NIS_QUARTERLY_SELF_EMPLOYED",
                agency=self.agency,
                filing_type="Quarterly Self-Employed",
                description="Quarterly NIS contributions for self-employed",
                interval_months=3,
                anchor=fifteenth_of_quarter,
                penalty=FlatRatePenaltyRule(daily_rate=quarterly.daily_rate, maximum=quarterly.maximum),
                applies_to=lambda p: p.business_type == BusinessType.SOLE_PROPRIETORSHIP,
            ),
        ]

    def assess(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceResult:
        tables = self.tables_for(as_of)
        deadlines = self.compute_deadlines(profile, filing_history, as_of)
        overdue = [d for d in deadlines if d.is_overdue]

        score = 100
        level = ComplianceLevel.COMPLIANT
        notes: List[str] = []

        if profile.has_employees and not profile.nis_number:
            score -= MISSING_REGISTRATION_DEDUCTION
            level = level.escalate(ComplianceLevel.CRITICAL)
            notes.append("Business must register with NIS for employee contributions")

        if overdue:
            score -= len(overdue) * OVERDUE_DEDUCTION
            notes.append(f"{len(overdue)} overdue NIS contribution(s)")
            logger.debug(
                f"NIS overdue for {profile.business_id}: "
                f"{', '.join(d.requirement_id for d in overdue)}"
            )
            if score < 60:
                level = level.escalate(ComplianceLevel.CRITICAL)
            elif score < 80:
                level = level.escalate(ComplianceLevel.MAJOR_ISSUES)
            else:
                level = level.escalate(ComplianceLevel.MINOR_ISSUES)

        self_employed_minimum = tables.social_insurance_limits[ContributionPeriod.ANNUAL].floor
        if (
            profile.business_type == BusinessType.SOLE_PROPRIETORSHIP
            and profile.annual_revenue >= self_employed_minimum
            and not profile.nis_number
        ):
            score -= SELF_EMPLOYED_REGISTRATION_DEDUCTION
            level = level.escalate(ComplianceLevel.MAJOR_ISSUES)
            notes.append("Self-employed individual must register with NIS")

        notes.extend(self.due_soon_notes(deadlines))

        return ComplianceResult(
            requirement_id="NIS_OVERALL",
            agency=self.agency,
            level=level,
            score=max(0, score),
            due_date=deadlines[0].due_date if deadlines else None,
            last_filed_date=self.last_filed_date(filing_history, as_of),
            days_overdue=max((d.days_overdue for d in overdue), default=0),
            accrued_penalty=sum((d.penalty.current_accrued for d in overdue), Decimal("0")),
            notes=notes,
        )

    def calculate_annual_budget(
        self,
        profile: BusinessProfile,
        as_of: datetime,
        average_monthly_payroll: Optional[Decimal] = None,
    ) -> SocialInsuranceBudget:
        """Annual contribution budget for business planning."""
        calculator = SocialInsuranceCalculator(self.tables_for(as_of))
        return calculator.calculate_annual_budget(profile, average_monthly_payroll)

    def get_forms(self) -> List[str]:
        return list(NIS_FORMS)
