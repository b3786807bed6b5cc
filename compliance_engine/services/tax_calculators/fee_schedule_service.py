"""
Compliance Engine - Registry Fee Schedule

Fixed fees keyed by (fee type, entity type). Not every entity type has
every fee; unknown combinations are worth 0 rather than an error.
"""

from decimal import Decimal
from typing import Any, Dict, Union

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.models.enums import BusinessType, FeeType

PROJECTION_YEARS = 5


class FeeScheduleService:
    """Fee lookups and projected registry costs."""

    def __init__(self, tables: RateTables):
        self.tables = tables

    def lookup(
        self,
        fee_type: Union[FeeType, str],
        entity_type: Union[BusinessType, str],
    ) -> Decimal:
        """Fixed fee for the combination, 0 when there is none."""
        try:
            fee_type = FeeType(fee_type)
            entity_type = BusinessType(entity_type)
        except ValueError:
            return Decimal("0")
        return self.tables.fee_schedule.get(fee_type, {}).get(entity_type, Decimal("0"))

    def annual_return_late_fee(self, entity_type: BusinessType) -> Decimal:
        return self.lookup(FeeType.ANNUAL_RETURN_LATE_FEE, entity_type)

    def calculate_compliance_costs(self, entity_type: BusinessType) -> Dict[str, Any]:
        """
        Registration fee plus recurring annual return cost, projected
        over the next five years.
        """
        registration = self.lookup(FeeType.REGISTRATION, entity_type)
        annual_return = self.lookup(FeeType.ANNUAL_RETURN, entity_type)
        return {
            "registration_fee": registration,
            "annual_return_fee": annual_return,
            "total_annual_cost": annual_return,
            "projected_costs": [annual_return] * PROJECTION_YEARS,
        }
