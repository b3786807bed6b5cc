"""
Compliance Engine - Test Configuration

Fixed as-of instant, fixture rate tables and sample business profiles.
"""

import dataclasses
from datetime import datetime
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from compliance_engine.config.rate_tables import GUYANA_2024, RateTableRegistry
from compliance_engine.config.settings import Settings
from compliance_engine.models.enums import Agency, BusinessType, ContributorClass
from compliance_engine.schemas.compliance import BusinessProfile, FilingRecord


AS_OF = datetime(2024, 6, 20, 12, 0, 0)


@pytest.fixture
def as_of() -> datetime:
    """Fixed evaluation instant: 20 June 2024, noon."""
    return AS_OF


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def tables():
    return GUYANA_2024


@pytest.fixture
def fixture_tables():
    """2024 tables with the employer rate used in the published examples (7.2%)."""
    return dataclasses.replace(
        GUYANA_2024,
        label="TEST",
        social_insurance_rates={
            **GUYANA_2024.social_insurance_rates,
            ContributorClass.EMPLOYER: Decimal("0.072"),
        },
    )


@pytest.fixture
def rate_registry() -> RateTableRegistry:
    return RateTableRegistry([GUYANA_2024])


def months_before(months: int, days: int = 0) -> datetime:
    return AS_OF - relativedelta(months=months, days=days)


@pytest.fixture
def compliant_corporation() -> BusinessProfile:
    """Registered corporation with every identifier; no staff, below VAT threshold."""
    return BusinessProfile(
        business_id="biz-corp-001",
        name="Demerara Holdings Inc.",
        business_type=BusinessType.CORPORATION,
        sector="retail",
        registration_date=datetime(2024, 2, 1),
        tax_id="TIN-100200300",
        nis_number="NIS-55001",
        annual_revenue=Decimal("5000000"),
    )


@pytest.fixture
def sole_proprietor() -> BusinessProfile:
    return BusinessProfile(
        business_id="biz-sole-001",
        name="Essequibo Crafts",
        business_type=BusinessType.SOLE_PROPRIETORSHIP,
        sector="retail",
        registration_date=datetime(2024, 5, 2),
        tax_id="TIN-400500600",
        annual_revenue=Decimal("2000000"),
    )


@pytest.fixture
def employer() -> BusinessProfile:
    """Partnership with staff and payroll, registered early 2024."""
    return BusinessProfile(
        business_id="biz-part-001",
        name="Berbice Partners",
        business_type=BusinessType.PARTNERSHIP,
        sector="services",
        registration_date=datetime(2024, 1, 10),
        tax_id="TIN-700800900",
        nis_number="NIS-77001",
        employee_count=4,
        annual_revenue=Decimal("8000000"),
        monthly_payroll=Decimal("800000"),
    )


@pytest.fixture
def unregistered_business() -> BusinessProfile:
    return BusinessProfile(
        business_id="biz-new-001",
        business_type=BusinessType.CORPORATION,
        sector="mining",
    )


def monthly_filings(agency: Agency, filing_type: str, start: datetime, count: int):
    """One on-time filing per month, starting the month after start."""
    return [
        FilingRecord(
            agency=agency,
            filing_type=filing_type,
            filed_date=start + relativedelta(months=k, day=10),
        )
        for k in range(1, count + 1)
    ]
