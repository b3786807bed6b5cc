"""
Compliance Engine - Penalty Accrual

Penalty formulas shared by every agency.

Percentage-based (late contributions, late payment interest):
    months_late = ceil(days_late / 30)
    penalty     = base_amount x monthly_rate x months_late

Flat-rate with cap (late filings):
    penalty     = min(maximum, days_late x daily_rate)

Penalties are never negative and never exceed a configured maximum.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from compliance_engine.models.enums import PenaltyMethod
from compliance_engine.schemas.compliance import PenaltyAccrual
from compliance_engine.services.tax_calculators.income_tax_service import round_money

DAYS_PER_PENALTY_MONTH = 30


class PenaltyCalculator:
    """Stateless penalty formulas."""

    @staticmethod
    def months_late(days_late: Optional[int]) -> int:
        """Whole months started, counted in 30-day blocks; 0 when not late."""
        if not days_late or days_late <= 0:
            return 0
        return (days_late + DAYS_PER_PENALTY_MONTH - 1) // DAYS_PER_PENALTY_MONTH

    @staticmethod
    def percentage_penalty(
        base_amount: Decimal,
        monthly_rate: Decimal,
        days_late: Optional[int],
        maximum: Optional[Decimal] = None,
    ) -> Decimal:
        """
        Percentage penalty on an outstanding amount.

        Args:
            base_amount: Amount the penalty is charged on
            monthly_rate: Rate per month late, as a fraction
            days_late: Days past the due date (None or 0 means on time)
            maximum: Optional cap

        Returns:
            Penalty rounded to cents; 0 for a non-positive base
        """
        base_amount = Decimal(str(base_amount))
        months = PenaltyCalculator.months_late(days_late)
        if months == 0 or base_amount <= 0 or monthly_rate <= 0:
            return Decimal("0")

        penalty = base_amount * Decimal(str(monthly_rate)) * months
        if maximum is not None:
            penalty = min(penalty, Decimal(str(maximum)))
        return round_money(max(Decimal("0"), penalty))

    @staticmethod
    def flat_rate_penalty(
        days_late: Optional[int],
        daily_rate: Decimal,
        maximum: Optional[Decimal] = None,
    ) -> Decimal:
        """Fixed daily fine up to a cap. maximum=None is uncapped."""
        if not days_late or days_late <= 0 or daily_rate <= 0:
            return Decimal("0")

        penalty = Decimal(days_late) * Decimal(str(daily_rate))
        if maximum is not None:
            penalty = min(penalty, Decimal(str(maximum)))
        return round_money(max(Decimal("0"), penalty))


# ===========================================
# PENALTY RULES
# ===========================================

DaysLate = Union[int, Sequence[int]]


def _periods(days_late: DaysLate) -> List[int]:
    if isinstance(days_late, int):
        return [days_late]
    return list(days_late)


def _cap(total: Decimal, maximum: Optional[Decimal]) -> Decimal:
    if maximum is not None:
        total = min(total, maximum)
    return max(Decimal("0"), total)


@dataclass(frozen=True)
class FlatRatePenaltyRule:
    """
    Daily fine capped at a maximum.

    When several occurrences of one obligation are missed, each accrues its
    own fine and the maximum caps the obligation as a whole.
    """
    daily_rate: Decimal
    maximum: Optional[Decimal] = None

    @property
    def method(self) -> PenaltyMethod:
        return PenaltyMethod.FLAT_RATE

    def amount(self, days_late: int, base_amount: Decimal = Decimal("0")) -> Decimal:
        return PenaltyCalculator.flat_rate_penalty(days_late, self.daily_rate, self.maximum)

    def accrue(self, days_late: DaysLate, base_amount: Decimal = Decimal("0")) -> PenaltyAccrual:
        total = sum((self.amount(days, base_amount) for days in _periods(days_late)), Decimal("0"))
        return PenaltyAccrual(
            method=self.method,
            daily_rate=self.daily_rate,
            maximum=self.maximum,
            current_accrued=_cap(total, self.maximum),
        )


@dataclass(frozen=True)
class PercentagePenaltyRule:
    """
    Monthly percentage of an estimated per-occurrence liability.

    Each missed occurrence accrues on its own base; the maximum caps the
    obligation as a whole.
    """
    monthly_rate: Decimal
    maximum: Optional[Decimal] = None

    @property
    def method(self) -> PenaltyMethod:
        return PenaltyMethod.PERCENTAGE

    def amount(self, days_late: int, base_amount: Decimal = Decimal("0")) -> Decimal:
        return PenaltyCalculator.percentage_penalty(
            base_amount, self.monthly_rate, days_late, self.maximum,
        )

    def accrue(self, days_late: DaysLate, base_amount: Decimal = Decimal("0")) -> PenaltyAccrual:
        total = sum((self.amount(days, base_amount) for days in _periods(days_late)), Decimal("0"))
        return PenaltyAccrual(
            method=self.method,
            monthly_rate=self.monthly_rate,
            base_amount=base_amount,
            maximum=self.maximum,
            current_accrued=_cap(total, self.maximum),
        )


PenaltyRule = Union[FlatRatePenaltyRule, PercentagePenaltyRule]
