"""
Compliance Engine - Compliance Schemas

Pydantic value objects passed into and returned from the engine.
Inputs are frozen; results are built fresh on every call.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compliance_engine.models.enums import (
    Agency,
    BusinessType,
    ComplianceJobType,
    ComplianceLevel,
    CorporateTaxCategory,
    IncomeType,
    PenaltyMethod,
)


def _as_datetime(value: Any) -> Any:
    """Plain dates are promoted to midnight datetimes."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Instants are compared as naive UTC throughout the engine.

    Aware values are converted to UTC and stripped of their tzinfo; naive
    values are taken to be UTC already and returned unchanged.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ===========================================
# INPUT SCHEMAS
# ===========================================

class Location(BaseModel):
    """Where the business operates."""
    model_config = ConfigDict(frozen=True)

    region: Optional[str] = None
    municipality: Optional[str] = None


class BusinessProfile(BaseModel):
    """Client business as supplied by the caller."""
    model_config = ConfigDict(frozen=True)

    business_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    business_type: BusinessType
    sector: str = ""
    registration_date: Optional[datetime] = None

    # Agency identifiers
    tax_id: Optional[str] = None
    nis_number: Optional[str] = None
    vat_registered: bool = False

    employee_count: int = Field(0, ge=0)
    annual_revenue: Decimal = Field(Decimal("0"), ge=0)
    # Estimated monthly payroll; base for percentage penalties on late contributions
    monthly_payroll: Optional[Decimal] = Field(None, ge=0)

    location: Location = Field(default_factory=Location)

    @field_validator("registration_date", mode="before")
    @classmethod
    def promote_registration_date(cls, value: Any) -> Any:
        return _as_datetime(value)

    @field_validator("registration_date")
    @classmethod
    def normalise_registration_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)

    @property
    def has_employees(self) -> bool:
        return self.employee_count > 0


class FilingRecord(BaseModel):
    """One historical filing. Lists are most-recent-first by convention."""
    model_config = ConfigDict(frozen=True)

    agency: Agency
    filing_type: str
    filed_date: datetime
    reference: Optional[str] = None

    @field_validator("filed_date", mode="before")
    @classmethod
    def promote_filed_date(cls, value: Any) -> Any:
        return _as_datetime(value)

    @field_validator("filed_date")
    @classmethod
    def normalise_filed_date(cls, value: datetime) -> datetime:
        return as_naive_utc(value)

    def matches(self, agency: Agency, filing_type: str) -> bool:
        return self.agency == agency and self.filing_type.lower() == filing_type.lower()


# ===========================================
# ASSESSMENT SCHEMAS
# ===========================================

class ComplianceResult(BaseModel):
    """One agency's assessment of one business."""
    requirement_id: str
    agency: Agency
    level: ComplianceLevel = ComplianceLevel.COMPLIANT
    score: int = Field(100, ge=0, le=100)
    due_date: Optional[datetime] = None
    last_filed_date: Optional[datetime] = None
    days_overdue: int = Field(0, ge=0)
    accrued_penalty: Decimal = Field(Decimal("0"), ge=0)
    notes: List[str] = Field(default_factory=list)


class PenaltyAccrual(BaseModel):
    """How a late obligation's penalty grows, and where it stands now."""
    method: PenaltyMethod
    daily_rate: Decimal = Decimal("0")
    monthly_rate: Decimal = Decimal("0")
    base_amount: Decimal = Decimal("0")
    maximum: Optional[Decimal] = None
    current_accrued: Decimal = Field(Decimal("0"), ge=0)

    @property
    def remaining_headroom(self) -> Optional[Decimal]:
        """How much more the penalty can grow; None when uncapped."""
        if self.maximum is None:
            return None
        return max(Decimal("0"), self.maximum - self.current_accrued)


class FilingDeadline(BaseModel):
    """
    A recurring filing obligation as of a point in time.

    due_date is the next occurrence, never before the as-of instant.
    last_missed_date is the oldest past occurrence no filing covers; it
    drives is_overdue, days_overdue and the penalty accrual.
    """
    requirement_id: str
    agency: Agency
    filing_type: str
    description: str
    due_date: datetime
    days_until_due: int
    is_overdue: bool = False
    last_missed_date: Optional[datetime] = None
    days_overdue: int = Field(0, ge=0)
    missed_occurrences: int = Field(0, ge=0)
    last_filed_date: Optional[datetime] = None
    penalty: PenaltyAccrual


class ComplianceScore(BaseModel):
    """Weighted overall score across agencies."""
    overall: int = Field(..., ge=0, le=100)
    by_agency: Dict[Agency, int]
    level: ComplianceLevel
    critical_issues_count: int = Field(0, ge=0)
    computed_at: datetime
    failed_agencies: List[Agency] = Field(default_factory=list)


class AgencyFailure(BaseModel):
    """An assessor that raised instead of returning a result."""
    agency: Agency
    error_code: str
    message: str


class ActionPlan(BaseModel):
    """Prioritized remediation plan."""
    critical_actions: List[str] = Field(default_factory=list)
    upcoming_deadlines: List[FilingDeadline] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    estimated_costs: Decimal = Decimal("0")
    # Agencies left out of the plan because their assessor raised
    agency_failures: List[AgencyFailure] = Field(default_factory=list)


class NameValidation(BaseModel):
    """Outcome of checking a proposed business name."""
    is_valid: bool
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class SetupValidation(BaseModel):
    """Registrations a business still needs, with matching next steps."""
    is_valid: bool
    missing_requirements: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)


class AssessmentRun(BaseModel):
    """Raw results of one assess-all call."""
    results: List[ComplianceResult] = Field(default_factory=list)
    failures: List[AgencyFailure] = Field(default_factory=list)

    def result_for(self, agency: Agency) -> Optional[ComplianceResult]:
        for result in self.results:
            if result.agency == agency:
                return result
        return None


class DeadlineRun(BaseModel):
    """Merged deadlines of one collection, plus the agencies that failed."""
    deadlines: List[FilingDeadline] = Field(default_factory=list)
    failures: List[AgencyFailure] = Field(default_factory=list)


class ComplianceReport(BaseModel):
    """Everything the orchestrator knows about one business at one instant."""
    business: BusinessProfile
    compliance_score: ComplianceScore
    agency_results: List[ComplianceResult]
    agency_failures: List[AgencyFailure] = Field(default_factory=list)
    upcoming_deadlines: List[FilingDeadline]
    action_plan: ActionPlan
    validation: SetupValidation
    generated_at: datetime


# ===========================================
# TAX CALCULATION SCHEMAS
# ===========================================

class WithholdingPayment(BaseModel):
    """A payment subject to withholding tax."""
    amount: Decimal = Field(..., ge=0)
    income_type: IncomeType


class TaxCalculationInput(BaseModel):
    """On-demand tax calculation request for a business."""
    annual_income: Optional[Decimal] = Field(None, ge=0)
    taxable_profit: Optional[Decimal] = Field(None, ge=0)
    corporate_category: Optional[CorporateTaxCategory] = None
    taxable_supplies: Optional[Decimal] = Field(None, ge=0)
    supplies_vat_inclusive: bool = False
    supply_category: Optional[str] = None
    withholding_payments: List[WithholdingPayment] = Field(default_factory=list)


class TaxCalculationResult(BaseModel):
    """Computed tax amounts by type."""
    income_tax: Decimal = Decimal("0")
    corporate_tax: Decimal = Decimal("0")
    vat: Decimal = Decimal("0")
    withholding_tax: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")
    breakdown: Dict[str, Any] = Field(default_factory=dict)


class SocialInsuranceBudget(BaseModel):
    """Annual social insurance cost for a business's workforce."""
    employee_contributions: Decimal = Decimal("0")
    employer_contributions: Decimal = Decimal("0")
    self_employed_contributions: Decimal = Decimal("0")
    total_annual: Decimal = Decimal("0")
    monthly_average: Decimal = Decimal("0")


class TaxObligations(BaseModel):
    """Taxes plus social insurance budget for one business."""
    business_id: str
    taxes: TaxCalculationResult
    social_insurance: SocialInsuranceBudget
    total_annual_cost: Decimal


# ===========================================
# BATCH SCHEMAS
# ===========================================

class PenaltyLine(BaseModel):
    """Accrued penalty for one overdue deadline."""
    agency: Agency
    requirement_id: str
    filing_type: str
    days_overdue: int
    amount: Decimal


class PenaltySummary(BaseModel):
    business_id: str
    penalties: List[PenaltyLine] = Field(default_factory=list)
    total: Decimal = Decimal("0")


class DeadlineCheck(BaseModel):
    """Deadlines worth notifying about, as structured data."""
    business_id: str
    upcoming: List[FilingDeadline] = Field(default_factory=list)
    overdue: List[FilingDeadline] = Field(default_factory=list)
    agency_failures: List[AgencyFailure] = Field(default_factory=list)


class BatchItemResult(BaseModel):
    """Outcome for one business in a batch; exactly one of value/error is set."""
    business_id: str
    success: bool
    value: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None


class BatchResult(BaseModel):
    job_type: ComplianceJobType
    as_of: datetime
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    items: List[BatchItemResult] = Field(default_factory=list)
