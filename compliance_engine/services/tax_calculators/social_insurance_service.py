"""
Compliance Engine - Social Insurance (NIS) Contribution Calculator

Contribution = clamp(wage, floor, ceiling) x class rate.

Guyana NIS (2024):
- Employee: 5.6%
- Employer: 8.4%
- Self-employed: 14%
- Weekly insurable wage: GYD 3,000 - 100,000
- Monthly insurable wage: GYD 13,000 - 433,333
- Annual self-employed income: GYD 156,000 minimum

Wages below the floor are contributed on the floor, not zero.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional

from compliance_engine.config.rate_tables import RateTables, WageLimits
from compliance_engine.models.enums import BusinessType, ContributionPeriod, ContributorClass
from compliance_engine.schemas.compliance import BusinessProfile, SocialInsuranceBudget
from compliance_engine.services.tax_calculators.income_tax_service import round_money
from compliance_engine.utils.error_handling import UnsupportedCategoryException

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = 52
MONTHS_PER_YEAR = 12


class SocialInsuranceCalculator:
    """Wage-clamped social insurance contributions."""

    def __init__(self, tables: RateTables):
        self.tables = tables

    def get_rate(self, contributor_class: ContributorClass) -> Decimal:
        try:
            return self.tables.social_insurance_rates[ContributorClass(contributor_class)]
        except (KeyError, ValueError):
            raise UnsupportedCategoryException(
                "contributor class",
                contributor_class,
                supported=[c.value for c in self.tables.social_insurance_rates],
            )

    def get_limits(self, period: ContributionPeriod) -> WageLimits:
        try:
            return self.tables.social_insurance_limits[ContributionPeriod(period)]
        except (KeyError, ValueError):
            raise UnsupportedCategoryException(
                "contribution period",
                period,
                supported=[p.value for p in self.tables.social_insurance_limits],
            )

    def insurable_wage(self, wage: Decimal, period: ContributionPeriod) -> Decimal:
        """Clamp a wage into the period's floor/ceiling."""
        limits = self.get_limits(period)
        return min(max(Decimal(str(wage)), limits.floor), limits.ceiling)

    def calculate_contribution(
        self,
        wage: Decimal,
        contributor_class: ContributorClass,
        period: ContributionPeriod = ContributionPeriod.WEEKLY,
    ) -> Decimal:
        """
        Calculate one contributor's share for one wage period.

        Args:
            wage: Gross wage for the period
            contributor_class: employee, employer or self_employed
            period: weekly, monthly or annual

        Returns:
            Contribution rounded to cents
        """
        rate = self.get_rate(contributor_class)
        return round_money(self.insurable_wage(wage, period) * rate)

    def calculate_contributions(
        self,
        wage: Decimal,
        period: ContributionPeriod = ContributionPeriod.WEEKLY,
    ) -> Dict[str, Decimal]:
        """Employee and employer shares for one employee's wage."""
        employee = self.calculate_contribution(wage, ContributorClass.EMPLOYEE, period)
        employer = self.calculate_contribution(wage, ContributorClass.EMPLOYER, period)
        return {
            "insurable_wage": self.insurable_wage(wage, period),
            "employee_contribution": employee,
            "employer_contribution": employer,
            "total_contribution": employee + employer,
        }

    def calculate_self_employed(self, annual_income: Decimal) -> Dict[str, Decimal]:
        """Self-employed contribution on annual income, with instalments."""
        annual = self.calculate_contribution(
            annual_income, ContributorClass.SELF_EMPLOYED, ContributionPeriod.ANNUAL,
        )
        return {
            "annual_contribution": annual,
            "quarterly_contribution": round_money(annual / 4),
            "monthly_contribution": round_money(annual / MONTHS_PER_YEAR),
        }

    def estimate_monthly_employer_remittance(self, profile: BusinessProfile) -> Decimal:
        """
        Estimated monthly employee + employer contributions for a business.

        Based on the profile's monthly payroll spread evenly over its staff;
        zero when no payroll figure is known.
        """
        if not profile.has_employees or not profile.monthly_payroll:
            return Decimal("0")
        per_employee = profile.monthly_payroll / profile.employee_count
        shares = self.calculate_contributions(per_employee, ContributionPeriod.MONTHLY)
        return round_money(shares["total_contribution"] * profile.employee_count)

    def calculate_annual_budget(
        self,
        profile: BusinessProfile,
        average_monthly_payroll: Optional[Decimal] = None,
    ) -> SocialInsuranceBudget:
        """
        Annual contribution budget for a business.

        Staff contributions are computed on the average weekly wage per
        employee; sole proprietors add their own self-employed contribution
        on annual revenue.
        """
        payroll = average_monthly_payroll
        if payroll is None:
            payroll = profile.monthly_payroll or Decimal("0")
        payroll = Decimal(str(payroll))

        employee_total = Decimal("0")
        employer_total = Decimal("0")
        self_employed_total = Decimal("0")

        if profile.has_employees and payroll > 0:
            weekly_payroll = payroll * MONTHS_PER_YEAR / WEEKS_PER_YEAR
            weekly_per_employee = weekly_payroll / profile.employee_count
            shares = self.calculate_contributions(weekly_per_employee, ContributionPeriod.WEEKLY)
            employee_total = shares["employee_contribution"] * profile.employee_count * WEEKS_PER_YEAR
            employer_total = shares["employer_contribution"] * profile.employee_count * WEEKS_PER_YEAR

        if profile.business_type == BusinessType.SOLE_PROPRIETORSHIP:
            self_employed_total = self.calculate_self_employed(profile.annual_revenue)["annual_contribution"]

        total = employee_total + employer_total + self_employed_total
        logger.debug(f"Annual NIS budget for {profile.business_id}: {total}")

        return SocialInsuranceBudget(
            employee_contributions=employee_total,
            employer_contributions=employer_total,
            self_employed_contributions=self_employed_total,
            total_annual=total,
            monthly_average=round_money(total / MONTHS_PER_YEAR),
        )
