"""
Compliance Engine - WHT Calculator

Withholding tax deducted at source on payments, by income category.

Guyana WHT rates (2024):
- Dividends: 20%
- Interest: 20%
- Royalties: 15%
- Management fees: 20%
- Technical services: 20%
- Rent: 10%
"""

from decimal import Decimal
from typing import Any, Dict

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.models.enums import IncomeType
from compliance_engine.services.tax_calculators.income_tax_service import round_money
from compliance_engine.utils.error_handling import UnsupportedCategoryException


class WHTCalculator:
    """
    Withholding Tax (WHT) calculator.

    Unknown income categories are a configuration error; there is no
    fallback rate.
    """

    def __init__(self, tables: RateTables):
        self.tables = tables

    def get_wht_rate(self, income_type: IncomeType) -> Decimal:
        """
        Get WHT rate for an income category.

        Returns:
            WHT rate as a fraction
        """
        try:
            return self.tables.withholding_rates[IncomeType(income_type)]
        except (KeyError, ValueError):
            raise UnsupportedCategoryException(
                "income type",
                income_type,
                supported=[t.value for t in self.tables.withholding_rates],
            )

    def calculate_wht(self, amount: Decimal, income_type: IncomeType) -> Decimal:
        """WHT on a gross payment; 0 for non-positive amounts."""
        rate = self.get_wht_rate(income_type)
        amount = Decimal(str(amount))
        if amount <= 0:
            return Decimal("0")
        return round_money(amount * rate)

    def calculate_payment(self, gross_amount: Decimal, income_type: IncomeType) -> Dict[str, Any]:
        """Gross, withheld and net amounts for one payment."""
        gross = Decimal(str(gross_amount))
        wht_amount = self.calculate_wht(gross, income_type)
        return {
            "gross_amount": gross,
            "income_type": IncomeType(income_type).value,
            "wht_rate": self.get_wht_rate(income_type),
            "wht_amount": wht_amount,
            "net_amount": gross - wht_amount,
        }
