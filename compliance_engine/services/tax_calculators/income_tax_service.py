"""
Compliance Engine - Income Tax Calculator

Progressive personal income tax and flat-rate corporate income tax.

Guyana 2024 brackets (annual chargeable income):
- GYD 0 - 780,000: 0%
- GYD 780,001 - 1,560,000: 28%
- Above GYD 1,560,000: 40%

Corporate rates:
- Standard: 25%
- Small business (turnover below GYD 15M): 10%
- Manufacturing: 20%
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence

from compliance_engine.config.rate_tables import RateTables, TaxBracket
from compliance_engine.models.enums import CorporateTaxCategory
from compliance_engine.utils.error_handling import UnsupportedCategoryException

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
RATE_PRECISION = Decimal("0.0001")


def round_money(amount: Decimal) -> Decimal:
    """Round a money amount to 2 decimal places, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def tax_in_bracket(bracket: TaxBracket, income: Decimal) -> Decimal:
    """Tax owed on the slice of income falling inside one bracket."""
    if income <= bracket.lower:
        return Decimal("0")

    if bracket.upper is None:
        # Top bracket (no upper limit)
        taxable_in_bracket = income - bracket.lower
    else:
        taxable_in_bracket = min(income, bracket.upper) - bracket.lower

    if taxable_in_bracket <= 0:
        return Decimal("0")

    return taxable_in_bracket * bracket.rate


@dataclass
class IncomeTaxResult:
    """Result of a progressive income tax calculation."""
    income: Decimal
    total_tax: Decimal
    effective_rate: Decimal
    marginal_rate: Decimal
    breakdown: List[Dict[str, Any]] = field(default_factory=list)


class IncomeTaxCalculator:
    """
    Progressive income tax calculator.

    Income is consumed bracket by bracket from the lowest; each bracket
    taxes min(remaining, width) at its own rate.
    """

    def __init__(self, brackets: Sequence[TaxBracket]):
        self.brackets = sorted(brackets, key=lambda b: b.lower)

    @classmethod
    def from_tables(cls, tables: RateTables) -> "IncomeTaxCalculator":
        return cls(tables.income_tax_brackets)

    def marginal_rate(self, income: Decimal) -> Decimal:
        """Rate of the bracket containing income (upper bound inclusive)."""
        for bracket in self.brackets:
            if bracket.upper is None or income <= bracket.upper:
                return bracket.rate
        return self.brackets[-1].rate

    def calculate(self, income: Decimal) -> IncomeTaxResult:
        """
        Calculate tax on an annual income.

        Returns:
            IncomeTaxResult with total, effective and marginal rates and a
            per-bracket breakdown of the brackets touched.
        """
        income = Decimal(str(income))
        if income <= 0:
            return IncomeTaxResult(
                income=income,
                total_tax=Decimal("0"),
                effective_rate=Decimal("0"),
                marginal_rate=self.brackets[0].rate if self.brackets else Decimal("0"),
            )

        total_tax = Decimal("0")
        breakdown = []

        for bracket in self.brackets:
            if income <= bracket.lower:
                break
            bracket_tax = tax_in_bracket(bracket, income)
            breakdown.append({
                "lower": bracket.lower,
                "upper": bracket.upper,
                "rate": bracket.rate,
                "taxable_amount": (
                    income if bracket.upper is None else min(income, bracket.upper)
                ) - bracket.lower,
                "tax_amount": round_money(bracket_tax),
            })
            total_tax += bracket_tax

        total_tax = round_money(total_tax)
        effective_rate = (total_tax / income).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

        return IncomeTaxResult(
            income=income,
            total_tax=total_tax,
            effective_rate=effective_rate,
            marginal_rate=self.marginal_rate(income),
            breakdown=breakdown,
        )


@dataclass
class CorporateTaxResult:
    taxable_income: Decimal
    category: CorporateTaxCategory
    rate: Decimal
    tax: Decimal


class CorporateTaxCalculator:
    """
    Corporate income tax at a flat rate chosen by category.

    A standard company whose turnover is below the small business
    threshold is taxed at the small business rate.
    """

    def __init__(self, tables: RateTables):
        self.tables = tables

    def resolve_category(
        self,
        gross_revenue: Decimal,
        category: Optional[CorporateTaxCategory] = None,
    ) -> CorporateTaxCategory:
        if category is None or category == CorporateTaxCategory.STANDARD:
            if gross_revenue < self.tables.small_business_turnover_threshold:
                return CorporateTaxCategory.SMALL_BUSINESS
            return CorporateTaxCategory.STANDARD
        return category

    def get_rate(self, category: CorporateTaxCategory) -> Decimal:
        try:
            return self.tables.corporate_tax_rates[CorporateTaxCategory(category)]
        except (KeyError, ValueError):
            raise UnsupportedCategoryException(
                "corporate tax category",
                category,
                supported=[c.value for c in self.tables.corporate_tax_rates],
            )

    def calculate(
        self,
        taxable_income: Decimal,
        gross_revenue: Decimal,
        category: Optional[CorporateTaxCategory] = None,
    ) -> CorporateTaxResult:
        """Calculate corporate tax; losses and zero profit owe nothing."""
        taxable_income = Decimal(str(taxable_income))
        resolved = self.resolve_category(Decimal(str(gross_revenue)), category)
        rate = self.get_rate(resolved)

        tax = round_money(taxable_income * rate) if taxable_income > 0 else Decimal("0")
        logger.debug(f"Corporate tax {tax} at {rate} ({resolved.value}) on {taxable_income}")

        return CorporateTaxResult(
            taxable_income=taxable_income,
            category=resolved,
            rate=rate,
            tax=tax,
        )
