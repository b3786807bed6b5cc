"""
Compliance Engine - GRA (Guyana Revenue Authority) Assessor

Filing compliance for the revenue authority plus on-demand tax calculation.

Recurring filings:
- Corporate income tax: annual, due 31 March (corporations, branches, subsidiaries)
- VAT return: monthly, due the 15th (VAT registered or revenue >= GYD 10M)
- Withholding/PAYE remittance: monthly, due the 15th (employers)

Scoring:
- -20 per overdue filing (Major below 70, Minor below 85)
- -30 and Critical when VAT registration is required but missing
- -25 and Critical without a tax identification number
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Sequence

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.models.enums import Agency, BusinessType, ComplianceLevel
from compliance_engine.schemas.compliance import (
    BusinessProfile,
    ComplianceResult,
    FilingRecord,
    TaxCalculationInput,
    TaxCalculationResult,
)
from compliance_engine.services.agencies.base import AgencyAssessor
from compliance_engine.services.compliance_penalty_service import FlatRatePenaltyRule
from compliance_engine.services.deadline_service import (
    DeadlineRule,
    fifteenth_of_month,
    fiscal_year_end,
)
from compliance_engine.services.tax_calculators import (
    CorporateTaxCalculator,
    IncomeTaxCalculator,
    VATCalculator,
    WHTCalculator,
)

logger = logging.getLogger(__name__)

OVERDUE_DEDUCTION = 20
VAT_REGISTRATION_DEDUCTION = 30
MISSING_TIN_DEDUCTION = 25

CORPORATE_TYPES = {BusinessType.CORPORATION, BusinessType.BRANCH, BusinessType.SUBSIDIARY}

FORMS_BY_TYPE = {
    BusinessType.CORPORATION: [
        "Form CIT-1: Corporate Income Tax Return",
        "Form VAT-1: Value Added Tax Return",
        "Form WHT-1: Withholding Tax Return",
        "Form PT-1: Property Tax Return",
    ],
    BusinessType.PARTNERSHIP: [
        "Form PIT-1: Partnership Income Tax Return",
        "Form VAT-1: Value Added Tax Return",
        "Form PT-1: Property Tax Return",
    ],
    BusinessType.SOLE_PROPRIETORSHIP: [
        "Form PIT-1: Personal Income Tax Return",
        "Form VAT-1: Value Added Tax Return (if applicable)",
        "Form PT-1: Property Tax Return",
    ],
}
FORMS_BY_TYPE[BusinessType.BRANCH] = FORMS_BY_TYPE[BusinessType.CORPORATION]
FORMS_BY_TYPE[BusinessType.SUBSIDIARY] = FORMS_BY_TYPE[BusinessType.CORPORATION]


def _flat_penalty(tables: RateTables, requirement_id: str) -> FlatRatePenaltyRule:
    terms = tables.penalty_for(requirement_id)
    return FlatRatePenaltyRule(daily_rate=terms.daily_rate, maximum=terms.maximum)


class TaxAuthorityAssessor(AgencyAssessor):
    """GRA filing compliance."""

    agency = Agency.GRA

    def vat_registration_required(self, profile: BusinessProfile, tables: RateTables) -> bool:
        return VATCalculator(tables).is_registration_required(profile.annual_revenue)

    def deadline_rules(self, profile: BusinessProfile, tables: RateTables) -> List[DeadlineRule]:
        return [
            DeadlineRule(
                requirement_id="GRA_CIT_ANNUAL",
                agency=self.agency,
                filing_type="Corporate Income Tax",
                description="Annual corporate income tax return",
                interval_months=12,
                anchor=fiscal_year_end,
                penalty=_flat_penalty(tables, "GRA_CIT_ANNUAL"),
                applies_to=lambda p: p.business_type in CORPORATE_TYPES,
            ),
            DeadlineRule(
                requirement_id="GRA_VAT_MONTHLY",
                agency=self.agency,
                filing_type="VAT Return",
                description="Monthly VAT return and payment",
                interval_months=1,
                anchor=fifteenth_of_month,
                penalty=_flat_penalty(tables, "GRA_VAT_MONTHLY"),
                applies_to=lambda p: p.vat_registered or self.vat_registration_required(p, tables),
            ),
            DeadlineRule(
                requirement_id="GRA_WHT_MONTHLY",
                agency=self.agency,
                filing_type="Withholding Tax",
                description="Monthly withholding tax remittance",
                interval_months=1,
                anchor=fifteenth_of_month,
                penalty=_flat_penalty(tables, "GRA_WHT_MONTHLY"),
                applies_to=lambda p: p.has_employees,
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

        if overdue:
            score -= len(overdue) * OVERDUE_DEDUCTION
            notes.append(f"{len(overdue)} overdue filing(s) with GRA")
            notes.extend(f"{d.filing_type} overdue by {d.days_overdue} days" for d in overdue)
            if score < 70:
                level = level.escalate(ComplianceLevel.MAJOR_ISSUES)
            elif score < 85:
                level = level.escalate(ComplianceLevel.MINOR_ISSUES)

        if self.vat_registration_required(profile, tables) and not profile.vat_registered:
            score -= VAT_REGISTRATION_DEDUCTION
            level = level.escalate(ComplianceLevel.CRITICAL)
            notes.append(
                f"Business must register for VAT (revenue exceeds GYD {tables.vat_registration_threshold:,.0f})"
            )

        if not profile.tax_id:
            score -= MISSING_TIN_DEDUCTION
            level = level.escalate(ComplianceLevel.CRITICAL)
            notes.append("Business must obtain TIN (Tax Identification Number)")

        notes.extend(self.due_soon_notes(deadlines))

        return ComplianceResult(
            requirement_id="GRA_OVERALL",
            agency=self.agency,
            level=level,
            score=max(0, score),
            due_date=deadlines[0].due_date if deadlines else None,
            last_filed_date=self.last_filed_date(filing_history, as_of),
            days_overdue=max((d.days_overdue for d in overdue), default=0),
            accrued_penalty=sum((d.penalty.current_accrued for d in overdue), Decimal("0")),
            notes=notes,
        )

    # ===========================================
    # TAX CALCULATION
    # ===========================================

    def calculate_taxes(
        self,
        profile: BusinessProfile,
        tax_input: TaxCalculationInput,
        as_of: datetime,
    ) -> TaxCalculationResult:
        """
        Compute the taxes a business owes on demand.

        Corporate entities pay corporate tax on taxable profit; partnerships
        and sole proprietors pay progressive income tax on annual income.
        VAT is charged on taxable supplies and withholding on each listed
        payment.
        """
        tables = self.tables_for(as_of)
        breakdown = {}

        income_tax = Decimal("0")
        if tax_input.annual_income is not None:
            result = IncomeTaxCalculator.from_tables(tables).calculate(tax_input.annual_income)
            income_tax = result.total_tax
            breakdown["income_tax"] = {
                "effective_rate": result.effective_rate,
                "marginal_rate": result.marginal_rate,
                "brackets": result.breakdown,
            }

        corporate_tax = Decimal("0")
        if tax_input.taxable_profit is not None and profile.business_type in CORPORATE_TYPES:
            result = CorporateTaxCalculator(tables).calculate(
                tax_input.taxable_profit, profile.annual_revenue, tax_input.corporate_category,
            )
            corporate_tax = result.tax
            breakdown["corporate_tax"] = {"category": result.category.value, "rate": result.rate}

        vat = Decimal("0")
        if tax_input.taxable_supplies is not None:
            vat = VATCalculator(tables).calculate_vat(
                tax_input.taxable_supplies,
                is_inclusive=tax_input.supplies_vat_inclusive,
                category=tax_input.supply_category,
            )
            breakdown["vat"] = {"rate": tables.vat_rate, "inclusive": tax_input.supplies_vat_inclusive}

        withholding = Decimal("0")
        if tax_input.withholding_payments:
            calculator = WHTCalculator(tables)
            payments = [
                calculator.calculate_payment(payment.amount, payment.income_type)
                for payment in tax_input.withholding_payments
            ]
            withholding = sum((p["wht_amount"] for p in payments), Decimal("0"))
            breakdown["withholding"] = payments

        total = income_tax + corporate_tax + vat + withholding
        logger.debug(f"GRA taxes for {profile.business_id}: {total}")

        return TaxCalculationResult(
            income_tax=income_tax,
            corporate_tax=corporate_tax,
            vat=vat,
            withholding_tax=withholding,
            total_tax=total,
            breakdown=breakdown,
        )

    def get_forms(self, business_type: BusinessType) -> List[str]:
        return list(FORMS_BY_TYPE.get(business_type, []))
