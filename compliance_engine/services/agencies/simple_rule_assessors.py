"""
Compliance Engine - Simple Rule Assessors

Agencies without recurring filings. Each defaults to 100 / Compliant and
only degrades when one business attribute crosses a threshold.

- GO_INVEST: revenue above the incentive threshold earns an informational
  note; foreign-owned structures (branch, subsidiary) need registration
- EPA: high-impact sectors need an environmental authorisation
- IMMIGRATION: branches and subsidiaries imply foreign staff needing permits
"""

from datetime import datetime
from typing import Sequence

from compliance_engine.models.enums import Agency, BusinessType, ComplianceLevel
from compliance_engine.schemas.compliance import BusinessProfile, ComplianceResult, FilingRecord
from compliance_engine.services.agencies.base import AgencyAssessor

FOREIGN_STRUCTURES = {BusinessType.BRANCH, BusinessType.SUBSIDIARY}


class InvestmentOfficeAssessor(AgencyAssessor):
    """GO-Invest incentive eligibility and foreign investment registration."""

    agency = Agency.GO_INVEST

    def assess(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceResult:
        tables = self.tables_for(as_of)
        result = ComplianceResult(requirement_id="GO_INVEST_OVERALL", agency=self.agency)

        if profile.annual_revenue > tables.investment_incentive_threshold:
            result.notes.append(
                f"Revenue above GYD {tables.investment_incentive_threshold:,.0f}: "
                "business may qualify for investment incentives"
            )

        if profile.business_type in FOREIGN_STRUCTURES:
            result.score = 90
            result.level = ComplianceLevel.MINOR_ISSUES
            result.notes.append("Foreign investment must be registered with GO-Invest")

        result.last_filed_date = self.last_filed_date(filing_history, as_of)
        return result


class EnvironmentalAssessor(AgencyAssessor):
    """EPA environmental authorisation by sector impact."""

    agency = Agency.EPA

    def assess(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceResult:
        tables = self.tables_for(as_of)
        sector = profile.sector.strip().lower()
        result = ComplianceResult(requirement_id="EPA_OVERALL", agency=self.agency)

        if sector in tables.high_impact_sectors:
            result.score = 50
            result.level = ComplianceLevel.MAJOR_ISSUES
            result.notes.append(
                f"High-impact sector ({sector}) requires an environmental permit and impact assessment"
            )
        elif sector in tables.medium_impact_sectors:
            result.notes.append(f"Sector {sector} may require an environmental authorisation")

        result.last_filed_date = self.last_filed_date(filing_history, as_of)
        return result


class ImmigrationAssessor(AgencyAssessor):
    """Work permits for foreign staff."""

    agency = Agency.IMMIGRATION

    def assess(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceResult:
        result = ComplianceResult(requirement_id="IMMIGRATION_OVERALL", agency=self.agency)

        if profile.business_type in FOREIGN_STRUCTURES:
            result.score = 90
            result.level = ComplianceLevel.MINOR_ISSUES
            result.notes.append("Foreign staff require valid work permits")

        result.last_filed_date = self.last_filed_date(filing_history, as_of)
        return result
