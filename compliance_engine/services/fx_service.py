"""
Compliance Engine - Foreign Exchange (FX) Service

Currency conversion through a single base currency. Every rate in the
table is the number of base-currency units per one unit of a currency,
so any pair converts as amount x rate[from] / rate[to].
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.utils.error_handling import UnsupportedCurrencyException

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.000001")


class FXService:
    """Service for foreign exchange conversion."""

    def __init__(self, tables: RateTables):
        self.tables = tables
        self.base_currency = tables.base_currency

    def get_base_rate(self, currency: str) -> Decimal:
        """Base-currency units per one unit of currency."""
        currency = currency.upper()
        if currency == self.base_currency:
            return Decimal("1")
        try:
            return self.tables.exchange_rates[currency]
        except KeyError:
            raise UnsupportedCurrencyException(currency, self.base_currency)

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Cross rate for a currency pair via the base currency.
        A zero rate for the target currency yields 0 instead of failing.
        """
        if from_currency.upper() == to_currency.upper():
            return Decimal("1.000000")

        from_rate = self.get_base_rate(from_currency)
        to_rate = self.get_base_rate(to_currency)
        if to_rate == 0:
            logger.warning(f"Zero exchange rate configured for {to_currency}")
            return Decimal("0")
        return (from_rate / to_rate).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """
        Convert an amount between currencies.

        Identity conversions return the input untouched without a rate lookup.
        """
        if from_currency.upper() == to_currency.upper():
            return amount

        from_rate = self.get_base_rate(from_currency)
        to_rate = self.get_base_rate(to_currency)
        if to_rate == 0:
            logger.warning(f"Zero exchange rate configured for {to_currency}")
            return Decimal("0")

        converted = Decimal(str(amount)) * from_rate / to_rate
        return converted.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
