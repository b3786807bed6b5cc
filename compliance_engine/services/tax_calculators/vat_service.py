"""
Compliance Engine - VAT Calculator

Guyana VAT rate (2024): 14%

Zero-rated supplies (exports, basic food, ...) and exempt supplies
(financial services, education, ...) carry no VAT whether the amount is
quoted inclusive or exclusive.
"""

from decimal import Decimal
from typing import Optional, Tuple

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.services.tax_calculators.income_tax_service import round_money


class VATCalculator:
    """
    VAT calculation utilities.

    Rates are fractions: Decimal("0.14") is 14%.
    """

    def __init__(self, tables: RateTables):
        self.tables = tables
        self.zero_rated_categories = tables.vat_zero_rated_categories
        self.exempt_categories = tables.vat_exempt_categories

    def is_zero_rated(self, category: Optional[str]) -> bool:
        return category is not None and category.lower() in self.zero_rated_categories

    def is_exempt(self, category: Optional[str]) -> bool:
        return category is not None and category.lower() in self.exempt_categories

    def calculate_vat(
        self,
        amount: Decimal,
        vat_rate: Optional[Decimal] = None,
        is_inclusive: bool = False,
        category: Optional[str] = None,
    ) -> Decimal:
        """
        Calculate the VAT portion of an amount.

        Args:
            amount: Net amount, or gross amount when is_inclusive
            vat_rate: VAT rate as a fraction (defaults to the table rate)
            is_inclusive: If True, amount already includes VAT
            category: Supply category, checked against zero-rated/exempt lists

        Returns:
            VAT amount, 0 for zero-rated/exempt supplies or non-positive amounts
        """
        amount = Decimal(str(amount))
        rate = self.tables.vat_rate if vat_rate is None else Decimal(str(vat_rate))

        if amount <= 0 or rate <= 0:
            return Decimal("0")
        if self.is_zero_rated(category) or self.is_exempt(category):
            return Decimal("0")

        if is_inclusive:
            # Extract VAT from inclusive amount
            return round_money(amount * rate / (1 + rate))
        return round_money(amount * rate)

    def split_inclusive(
        self,
        gross_amount: Decimal,
        vat_rate: Optional[Decimal] = None,
        category: Optional[str] = None,
    ) -> Tuple[Decimal, Decimal]:
        """Split a VAT-inclusive amount into (net_amount, vat_amount)."""
        gross_amount = Decimal(str(gross_amount))
        vat_amount = self.calculate_vat(gross_amount, vat_rate, is_inclusive=True, category=category)
        return gross_amount - vat_amount, vat_amount

    def is_registration_required(self, annual_revenue: Decimal) -> bool:
        """VAT registration is required once revenue reaches the threshold."""
        return Decimal(str(annual_revenue)) >= self.tables.vat_registration_threshold
