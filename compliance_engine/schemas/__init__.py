"""
Compliance Engine - Schemas Package

Pydantic value objects for engine inputs and outputs.
"""

from compliance_engine.schemas.compliance import (
    Location,
    BusinessProfile,
    FilingRecord,
    ComplianceResult,
    PenaltyAccrual,
    FilingDeadline,
    ComplianceScore,
    ActionPlan,
    NameValidation,
    SetupValidation,
    AgencyFailure,
    AssessmentRun,
    DeadlineRun,
    ComplianceReport,
    WithholdingPayment,
    TaxCalculationInput,
    TaxCalculationResult,
    SocialInsuranceBudget,
    TaxObligations,
    PenaltyLine,
    PenaltySummary,
    DeadlineCheck,
    BatchItemResult,
    BatchResult,
    as_naive_utc,
)

__all__ = [
    "Location",
    "BusinessProfile",
    "FilingRecord",
    "ComplianceResult",
    "PenaltyAccrual",
    "FilingDeadline",
    "ComplianceScore",
    "ActionPlan",
    "NameValidation",
    "SetupValidation",
    "AgencyFailure",
    "AssessmentRun",
    "DeadlineRun",
    "ComplianceReport",
    "WithholdingPayment",
    "TaxCalculationInput",
    "TaxCalculationResult",
    "SocialInsuranceBudget",
    "TaxObligations",
    "PenaltyLine",
    "PenaltySummary",
    "DeadlineCheck",
    "BatchItemResult",
    "BatchResult",
    "as_naive_utc",
]
