"""
Compliance Engine - Domain Enums

Enums shared by the rate tables, schemas and services.
Defined here (not in schemas or config) to avoid circular imports.
"""

from enum import Enum


class Agency(str, Enum):
    """
    Regulatory agencies tracked by the engine.

    - GRA: Revenue authority (income tax, VAT, withholding)
    - NIS: National Insurance Scheme (social insurance contributions)
    - DCRA: Deeds & Commercial Registry Authority (annual returns)
    - GO_INVEST: Investment promotion office (incentives)
    - EPA: Environmental Protection Agency
    - IMMIGRATION: Work permits and visas
    """
    GRA = "GRA"
    NIS = "NIS"
    DCRA = "DCRA"
    GO_INVEST = "GO_INVEST"
    EPA = "EPA"
    IMMIGRATION = "IMMIGRATION"


class BusinessType(str, Enum):
    """Legal form of a client business."""
    CORPORATION = "CORPORATION"
    PARTNERSHIP = "PARTNERSHIP"
    SOLE_PROPRIETORSHIP = "SOLE_PROPRIETORSHIP"
    BRANCH = "BRANCH"
    SUBSIDIARY = "SUBSIDIARY"


class ComplianceLevel(str, Enum):
    """Ordinal severity: COMPLIANT < MINOR_ISSUES < MAJOR_ISSUES < CRITICAL."""
    COMPLIANT = "COMPLIANT"
    MINOR_ISSUES = "MINOR_ISSUES"
    MAJOR_ISSUES = "MAJOR_ISSUES"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return _LEVEL_ORDER[self]

    def escalate(self, other: "ComplianceLevel") -> "ComplianceLevel":
        """Return the more severe of the two levels."""
        return other if other.severity > self.severity else self


_LEVEL_ORDER = {
    ComplianceLevel.COMPLIANT: 0,
    ComplianceLevel.MINOR_ISSUES: 1,
    ComplianceLevel.MAJOR_ISSUES: 2,
    ComplianceLevel.CRITICAL: 3,
}


class ContributorClass(str, Enum):
    """Social insurance contributor classes, each with its own rate."""
    EMPLOYEE = "employee"
    EMPLOYER = "employer"
    SELF_EMPLOYED = "self_employed"


class ContributionPeriod(str, Enum):
    """Wage period, each with its own insurable floor and ceiling."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class IncomeType(str, Enum):
    """Payment categories subject to withholding tax."""
    DIVIDENDS = "dividends"
    INTEREST = "interest"
    ROYALTIES = "royalties"
    MANAGEMENT_FEES = "management_fees"
    TECHNICAL_SERVICES = "technical_services"
    RENT = "rent"


class CorporateTaxCategory(str, Enum):
    """Corporate income tax rate categories."""
    STANDARD = "standard"
    SMALL_BUSINESS = "small_business"
    MANUFACTURING = "manufacturing"


class FeeType(str, Enum):
    """Registry fee schedule entries."""
    REGISTRATION = "registration"
    ANNUAL_RETURN = "annual_return"
    ANNUAL_RETURN_LATE_FEE = "annual_return_late_fee"
    NAME_RESERVATION = "name_reservation"
    CHANGE_REGISTERED_OFFICE = "change_registered_office"
    CHANGE_DIRECTORS = "change_directors"
    CHANGE_SHARE_CAPITAL = "change_share_capital"
    CHANGE_BUSINESS_NAME = "change_business_name"


class TaxType(str, Enum):
    """Calculation types accepted by calculate_tax()."""
    INCOME_TAX = "income_tax"
    CORPORATE_TAX = "corporate_tax"
    VAT = "vat"
    WITHHOLDING = "withholding"
    SOCIAL_INSURANCE = "social_insurance"


class PenaltyMethod(str, Enum):
    """How a late obligation accrues its penalty."""
    FLAT_RATE = "flat_rate"
    PERCENTAGE = "percentage"


class ComplianceJobType(str, Enum):
    """Batch job types run over many businesses at once."""
    SCORE_REFRESH = "score_refresh"
    DEADLINE_CHECK = "deadline_check"
    COMPLIANCE_REPORT = "compliance_report"
    PENALTY_CALCULATION = "penalty_calculation"
