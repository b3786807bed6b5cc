"""
Compliance Engine - Versioned Rate Tables

Constant tables the primitives depend on, keyed by effective date range so
a prior year's obligations can be recomputed with the rates then in force.
All rates are fractions (Decimal("0.14") == 14%). Amounts in GYD.

Tables are passed explicitly to calculators and assessors; tests build
their own with dataclasses.replace() instead of patching module state.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from compliance_engine.models.enums import (
    BusinessType,
    ContributionPeriod,
    ContributorClass,
    CorporateTaxCategory,
    FeeType,
    IncomeType,
)
from compliance_engine.utils.error_handling import (
    ConfigurationException,
    RateTableNotFoundException,
)


@dataclass(frozen=True)
class TaxBracket:
    """Progressive income tax bracket. upper=None marks the unbounded top bracket."""
    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal


@dataclass(frozen=True)
class WageLimits:
    """Insurable wage floor and ceiling for one contribution period."""
    floor: Decimal
    ceiling: Decimal


@dataclass(frozen=True)
class PenaltyTerms:
    """
    Penalty parameters for one recurring obligation.

    daily_rate/maximum drive flat-rate accrual; monthly_rate drives
    percentage accrual on an estimated liability. maximum=None is uncapped.
    """
    daily_rate: Decimal = Decimal("0")
    monthly_rate: Decimal = Decimal("0")
    maximum: Optional[Decimal] = None


@dataclass(frozen=True)
class RateTables:
    """All rates in force for one effective date range."""
    label: str
    effective_from: date
    effective_to: Optional[date]

    # Income and corporate tax
    income_tax_brackets: Tuple[TaxBracket, ...]
    corporate_tax_rates: Dict[CorporateTaxCategory, Decimal]
    small_business_turnover_threshold: Decimal

    # VAT
    vat_rate: Decimal
    vat_zero_rated_categories: FrozenSet[str]
    vat_exempt_categories: FrozenSet[str]
    vat_registration_threshold: Decimal

    # Social insurance
    social_insurance_rates: Dict[ContributorClass, Decimal]
    social_insurance_limits: Dict[ContributionPeriod, WageLimits]

    # Withholding tax
    withholding_rates: Dict[IncomeType, Decimal]

    # Registry fees, keyed by fee type then entity type
    fee_schedule: Dict[FeeType, Dict[BusinessType, Decimal]]
    annual_return_due_months: int

    # Penalties, keyed by requirement id
    penalty_terms: Dict[str, PenaltyTerms]

    # Exchange rates: units of base currency per one unit of currency
    base_currency: str
    exchange_rates: Dict[str, Decimal]

    # Simple rule assessor thresholds
    investment_incentive_threshold: Decimal
    high_impact_sectors: FrozenSet[str]
    medium_impact_sectors: FrozenSet[str] = field(default_factory=frozenset)

    def covers(self, as_of: date) -> bool:
        """Whether this table is in force on the given date."""
        if as_of < self.effective_from:
            return False
        return self.effective_to is None or as_of <= self.effective_to

    def penalty_for(self, requirement_id: str) -> PenaltyTerms:
        """Penalty terms for a requirement; configuration error if absent."""
        try:
            return self.penalty_terms[requirement_id]
        except KeyError:
            raise ConfigurationException(
                f"No penalty terms configured for requirement {requirement_id}",
                details={"requirement_id": requirement_id, "table": self.label},
            )


# =============================================================================
# GUYANA 2024 RATES
# =============================================================================

GUYANA_2024 = RateTables(
    label="GY-2024",
    effective_from=date(2024, 1, 1),
    effective_to=None,

    income_tax_brackets=(
        TaxBracket(Decimal("0"), Decimal("780000"), Decimal("0")),
        TaxBracket(Decimal("780000"), Decimal("1560000"), Decimal("0.28")),
        TaxBracket(Decimal("1560000"), None, Decimal("0.40")),
    ),
    corporate_tax_rates={
        CorporateTaxCategory.STANDARD: Decimal("0.25"),
        CorporateTaxCategory.SMALL_BUSINESS: Decimal("0.10"),
        CorporateTaxCategory.MANUFACTURING: Decimal("0.20"),
    },
    small_business_turnover_threshold=Decimal("15000000"),  # GYD 15M

    vat_rate=Decimal("0.14"),
    vat_zero_rated_categories=frozenset({
        "exports",
        "basic_food",
        "agricultural_inputs",
        "medical_supplies",
    }),
    vat_exempt_categories=frozenset({
        "financial_services",
        "education",
        "health",
        "residential_rental",
    }),
    vat_registration_threshold=Decimal("10000000"),  # GYD 10M

    social_insurance_rates={
        ContributorClass.EMPLOYEE: Decimal("0.056"),
        ContributorClass.EMPLOYER: Decimal("0.084"),
        ContributorClass.SELF_EMPLOYED: Decimal("0.14"),
    },
    social_insurance_limits={
        ContributionPeriod.WEEKLY: WageLimits(Decimal("3000"), Decimal("100000")),
        ContributionPeriod.MONTHLY: WageLimits(Decimal("13000"), Decimal("433333")),
        ContributionPeriod.ANNUAL: WageLimits(Decimal("156000"), Decimal("5200000")),
    },

    withholding_rates={
        IncomeType.DIVIDENDS: Decimal("0.20"),
        IncomeType.INTEREST: Decimal("0.20"),
        IncomeType.ROYALTIES: Decimal("0.15"),
        IncomeType.MANAGEMENT_FEES: Decimal("0.20"),
        IncomeType.TECHNICAL_SERVICES: Decimal("0.20"),
        IncomeType.RENT: Decimal("0.10"),
    },

    fee_schedule={
        FeeType.REGISTRATION: {
            BusinessType.CORPORATION: Decimal("25000"),
            BusinessType.PARTNERSHIP: Decimal("15000"),
            BusinessType.SOLE_PROPRIETORSHIP: Decimal("10000"),
            BusinessType.BRANCH: Decimal("30000"),
            BusinessType.SUBSIDIARY: Decimal("25000"),
        },
        FeeType.ANNUAL_RETURN: {
            BusinessType.CORPORATION: Decimal("15000"),
            BusinessType.PARTNERSHIP: Decimal("10000"),
            BusinessType.SOLE_PROPRIETORSHIP: Decimal("5000"),
            BusinessType.BRANCH: Decimal("15000"),
            BusinessType.SUBSIDIARY: Decimal("15000"),
        },
        FeeType.ANNUAL_RETURN_LATE_FEE: {
            BusinessType.CORPORATION: Decimal("5000"),
            BusinessType.PARTNERSHIP: Decimal("3000"),
            BusinessType.SOLE_PROPRIETORSHIP: Decimal("2000"),
            BusinessType.BRANCH: Decimal("5000"),
            BusinessType.SUBSIDIARY: Decimal("5000"),
        },
        FeeType.NAME_RESERVATION: {
            business_type: Decimal("2000") for business_type in BusinessType
        },
        FeeType.CHANGE_REGISTERED_OFFICE: {
            business_type: Decimal("5000") for business_type in BusinessType
        },
        FeeType.CHANGE_DIRECTORS: {
            BusinessType.CORPORATION: Decimal("3000"),
            BusinessType.PARTNERSHIP: Decimal("3000"),
            BusinessType.BRANCH: Decimal("3000"),
            BusinessType.SUBSIDIARY: Decimal("3000"),
        },
        FeeType.CHANGE_SHARE_CAPITAL: {
            BusinessType.CORPORATION: Decimal("10000"),
            BusinessType.SUBSIDIARY: Decimal("10000"),
        },
        FeeType.CHANGE_BUSINESS_NAME: {
            business_type: Decimal("8000") for business_type in BusinessType
        },
    },
    annual_return_due_months=12,

    penalty_terms={
        "DCRA_ANNUAL_RETURN": PenaltyTerms(daily_rate=Decimal("100")),  # capped at late fee
        "GRA_CIT_ANNUAL": PenaltyTerms(daily_rate=Decimal("5000"), maximum=Decimal("500000")),
        "GRA_VAT_MONTHLY": PenaltyTerms(daily_rate=Decimal("2000"), maximum=Decimal("200000")),
        "GRA_WHT_MONTHLY": PenaltyTerms(daily_rate=Decimal("1000"), maximum=Decimal("100000")),
        "NIS_MONTHLY_CONTRIBUTIONS": PenaltyTerms(
            monthly_rate=Decimal("0.015"), maximum=Decimal("50000"),
        ),
        "NIS_QUARTERLY_SELF_EMPLOYED": PenaltyTerms(
            daily_rate=Decimal("200"), maximum=Decimal("25000"),
        ),
    },

    base_currency="GYD",
    exchange_rates={
        "GYD": Decimal("1"),
        "USD": Decimal("208.50"),
        "EUR": Decimal("225.40"),
        "GBP": Decimal("263.10"),
        "CAD": Decimal("153.20"),
        "TTD": Decimal("30.70"),
        "BBD": Decimal("103.25"),
    },

    investment_incentive_threshold=Decimal("50000000"),  # GYD 50M
    high_impact_sectors=frozenset({
        "mining",
        "oil_and_gas",
        "forestry",
        "manufacturing",
        "chemicals",
        "energy",
        "waste_management",
    }),
    medium_impact_sectors=frozenset({
        "agriculture",
        "construction",
        "transportation",
        "tourism",
        "fisheries",
    }),
)


class RateTableRegistry:
    """
    Holds every versioned rate table and resolves the one in force on a date.

    When ranges overlap, the table with the latest effective_from wins.
    """

    def __init__(self, tables: Iterable[RateTables]):
        self._tables: List[RateTables] = sorted(tables, key=lambda t: t.effective_from)
        if not self._tables:
            raise ConfigurationException("Rate table registry needs at least one table")

    @property
    def tables(self) -> List[RateTables]:
        return list(self._tables)

    def for_date(self, as_of: Union[date, datetime]) -> RateTables:
        """Return the table in force on as_of."""
        day = as_of.date() if isinstance(as_of, datetime) else as_of
        for table in reversed(self._tables):
            if table.covers(day):
                return table
        raise RateTableNotFoundException(day)


DEFAULT_RATE_TABLES = RateTableRegistry([GUYANA_2024])


def get_rate_tables(as_of: Union[date, datetime]) -> RateTables:
    """Default rate table in force on as_of."""
    return DEFAULT_RATE_TABLES.for_date(as_of)
