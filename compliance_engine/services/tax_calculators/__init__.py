"""
Compliance Engine - Tax Calculators Package

Tax and contribution primitives. All are pure and read their constants
from an explicitly passed RateTables.

Modules:
- income_tax_service: progressive income tax and flat corporate tax
- vat_service: VAT (14%) with zero-rated and exempt categories
- social_insurance_service: wage-clamped NIS contributions
- wht_service: withholding tax by income type
- fee_schedule_service: registry fees by entity type
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Union

from compliance_engine.config.rate_tables import DEFAULT_RATE_TABLES, RateTables
from compliance_engine.models.enums import (
    BusinessType,
    ContributionPeriod,
    ContributorClass,
    CorporateTaxCategory,
    FeeType,
    IncomeType,
    TaxType,
)
from compliance_engine.services.tax_calculators.income_tax_service import (
    CorporateTaxCalculator,
    CorporateTaxResult,
    IncomeTaxCalculator,
    IncomeTaxResult,
    round_money,
)
from compliance_engine.services.tax_calculators.vat_service import VATCalculator
from compliance_engine.services.tax_calculators.social_insurance_service import SocialInsuranceCalculator
from compliance_engine.services.tax_calculators.wht_service import WHTCalculator
from compliance_engine.services.tax_calculators.fee_schedule_service import FeeScheduleService
from compliance_engine.utils.error_handling import UnsupportedCalculationException


def resolve_tables(
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> RateTables:
    """
    Explicit tables win; otherwise the default table in force on as_of;
    with neither, the most recently published default table.
    """
    if tables is not None:
        return tables
    if as_of is not None:
        return DEFAULT_RATE_TABLES.for_date(as_of)
    return DEFAULT_RATE_TABLES.tables[-1]


# ===========================================
# CONVENIENCE FUNCTIONS
# ===========================================

def calculate_income_tax(
    income: Decimal,
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> IncomeTaxResult:
    """
    Calculate progressive income tax on annual income.

    Guyana 2024 brackets:
    - 0%: up to GYD 780,000
    - 28%: GYD 780,001 - 1,560,000
    - 40%: above GYD 1,560,000
    """
    return IncomeTaxCalculator.from_tables(resolve_tables(tables, as_of)).calculate(income)


def calculate_corporate_tax(
    taxable_income: Decimal,
    gross_revenue: Decimal,
    category: Optional[CorporateTaxCategory] = None,
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> CorporateTaxResult:
    return CorporateTaxCalculator(resolve_tables(tables, as_of)).calculate(
        taxable_income, gross_revenue, category,
    )


def calculate_vat(
    amount: Decimal,
    is_inclusive: bool = False,
    category: Optional[str] = None,
    vat_rate: Optional[Decimal] = None,
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> Decimal:
    """
    Calculate VAT on an amount.

    Returns:
        VAT amount (0 for zero-rated or exempt categories)
    """
    return VATCalculator(resolve_tables(tables, as_of)).calculate_vat(
        amount, vat_rate=vat_rate, is_inclusive=is_inclusive, category=category,
    )


def calculate_social_insurance(
    wage: Decimal,
    contributor_class: Union[ContributorClass, str],
    period: Union[ContributionPeriod, str] = ContributionPeriod.WEEKLY,
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> Decimal:
    """Contribution on a wage clamped to the period's floor and ceiling."""
    return SocialInsuranceCalculator(resolve_tables(tables, as_of)).calculate_contribution(
        wage, contributor_class, period,
    )


def calculate_wht(
    amount: Decimal,
    income_type: Union[IncomeType, str],
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> Decimal:
    """Calculate Withholding Tax on a payment."""
    return WHTCalculator(resolve_tables(tables, as_of)).calculate_wht(amount, income_type)


def lookup_fee(
    fee_type: Union[FeeType, str],
    entity_type: Union[BusinessType, str],
    tables: Optional[RateTables] = None,
    as_of: Optional[Union[date, datetime]] = None,
) -> Decimal:
    """Registry fee for (fee type, entity type); 0 if not applicable."""
    return FeeScheduleService(resolve_tables(tables, as_of)).lookup(fee_type, entity_type)


def _income_tax_total(**kwargs: Any) -> Decimal:
    return calculate_income_tax(**kwargs).total_tax


def _corporate_tax_total(**kwargs: Any) -> Decimal:
    return calculate_corporate_tax(**kwargs).tax


_DISPATCH: Dict[TaxType, Callable[..., Decimal]] = {
    TaxType.INCOME_TAX: _income_tax_total,
    TaxType.CORPORATE_TAX: _corporate_tax_total,
    TaxType.VAT: calculate_vat,
    TaxType.WITHHOLDING: calculate_wht,
    TaxType.SOCIAL_INSURANCE: calculate_social_insurance,
}


def calculate_tax(tax_type: Union[TaxType, str], **kwargs: Any) -> Decimal:
    """
    Calculate any supported tax by type.

    Keyword arguments are passed through to the matching convenience
    function. Unknown tax types are a configuration error.
    """
    try:
        calculator = _DISPATCH[TaxType(tax_type)]
    except (KeyError, ValueError):
        raise UnsupportedCalculationException(tax_type, supported=[t.value for t in _DISPATCH])
    return calculator(**kwargs)


__all__ = [
    "CorporateTaxCalculator",
    "CorporateTaxResult",
    "FeeScheduleService",
    "IncomeTaxCalculator",
    "IncomeTaxResult",
    "SocialInsuranceCalculator",
    "VATCalculator",
    "WHTCalculator",
    "calculate_corporate_tax",
    "calculate_income_tax",
    "calculate_social_insurance",
    "calculate_tax",
    "calculate_vat",
    "calculate_wht",
    "lookup_fee",
    "resolve_tables",
    "round_money",
]
