"""
Compliance Engine - Agency Assessors Package

One assessor per agency, registered in an AssessorRegistry.
"""

from typing import Optional

from compliance_engine.config.rate_tables import RateTableRegistry
from compliance_engine.config.settings import Settings
from compliance_engine.services.agencies.base import AgencyAssessor, AssessorRegistry
from compliance_engine.services.agencies.registry_assessor import RegistryAssessor
from compliance_engine.services.agencies.simple_rule_assessors import (
    EnvironmentalAssessor,
    ImmigrationAssessor,
    InvestmentOfficeAssessor,
)
from compliance_engine.services.agencies.social_insurance_assessor import SocialInsuranceAssessor
from compliance_engine.services.agencies.tax_authority_assessor import TaxAuthorityAssessor


def default_registry(
    rate_tables: Optional[RateTableRegistry] = None,
    settings: Optional[Settings] = None,
) -> AssessorRegistry:
    """Registry with an assessor for every built-in agency."""
    return AssessorRegistry([
        assessor_class(rate_tables=rate_tables, settings=settings)
        for assessor_class in (
            TaxAuthorityAssessor,
            SocialInsuranceAssessor,
            RegistryAssessor,
            InvestmentOfficeAssessor,
            EnvironmentalAssessor,
            ImmigrationAssessor,
        )
    ])


__all__ = [
    "AgencyAssessor",
    "AssessorRegistry",
    "EnvironmentalAssessor",
    "ImmigrationAssessor",
    "InvestmentOfficeAssessor",
    "RegistryAssessor",
    "SocialInsuranceAssessor",
    "TaxAuthorityAssessor",
    "default_registry",
]
