"""
Compliance Engine - Domain Models

Enums shared across the engine.
"""

from compliance_engine.models.enums import (
    Agency,
    BusinessType,
    ComplianceJobType,
    ComplianceLevel,
    ContributionPeriod,
    ContributorClass,
    CorporateTaxCategory,
    FeeType,
    IncomeType,
    PenaltyMethod,
    TaxType,
)

__all__ = [
    "Agency",
    "BusinessType",
    "ComplianceJobType",
    "ComplianceLevel",
    "ContributionPeriod",
    "ContributorClass",
    "CorporateTaxCategory",
    "FeeType",
    "IncomeType",
    "PenaltyMethod",
    "TaxType",
]
