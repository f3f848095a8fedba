"""Installment calculator - interest strategies, CFT and payment schedule"""

import math
from datetime import date, timedelta
from typing import List, Protocol
from cuotificador.domain.models import Installment, InstallmentBreakdown
from cuotificador.domain.exceptions import InvalidAmount, InvalidInstallmentCount, InvalidRate


class InterestStrategy(Protocol):
    """Applies an annual rate to an amount financed over N installments"""

    name: str

    def total_with_interest(
        self, amount: float, rate: float, fixed_surcharge: float, installments: int
    ) -> float: ...


class ProratedInterestStrategy:
    """
    Rate prorated by installment count over a 12-month year.

    total = amount * (1 + rate/100 * installments/12) + fixed_surcharge
    """

    name = "prorated"

    def total_with_interest(
        self, amount: float, rate: float, fixed_surcharge: float, installments: int
    ) -> float:
        return amount * (1 + rate / 100 * installments / 12) + fixed_surcharge


class FlatInterestStrategy:
    """
    Rate applied once on the total, regardless of installment count.

    total = amount * (1 + rate/100) + fixed_surcharge
    """

    name = "flat"

    def total_with_interest(
        self, amount: float, rate: float, fixed_surcharge: float, installments: int
    ) -> float:
        return amount * (1 + rate / 100) + fixed_surcharge


PRORATED = ProratedInterestStrategy()
FLAT = FlatInterestStrategy()

STRATEGIES = {PRORATED.name: PRORATED, FLAT.name: FLAT}


def validate_installments(installments: int) -> None:
    if isinstance(installments, bool) or not isinstance(installments, int) or installments <= 0:
        raise InvalidInstallmentCount(f"Installment count must be a positive integer, got {installments!r}")


def validate_amount(amount: float) -> None:
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmount(f"Amount must be a finite number > 0, got {amount}")


def validate_rate(rate: float, fixed_surcharge: float) -> None:
    # nan compares false against everything
    if not math.isfinite(rate) or rate < 0:
        raise InvalidRate(f"Rate must be a finite number >= 0, got {rate}")
    if not math.isfinite(fixed_surcharge) or fixed_surcharge < 0:
        raise InvalidRate(f"Fixed surcharge must be a finite number >= 0, got {fixed_surcharge}")


def effective_annual_cost(amount: float, total_with_interest: float, installments: int) -> float:
    """CFT as an annualized percentage, full precision"""
    return (total_with_interest / amount - 1) * 12 / installments * 100


def calculate_installments(
    amount: float,
    rate: float,
    fixed_surcharge: float = 0.0,
    installments: int = 1,
    strategy: InterestStrategy = PRORATED,
) -> InstallmentBreakdown:
    """
    Compute total, per-installment amount and CFT for a financed amount.

    Raises:
        InvalidAmount: amount <= 0 or not finite
        InvalidInstallmentCount: installments is not a positive integer
        InvalidRate: negative or non-finite rate or surcharge

    Example:
        100000 at 25% over 6 installments (prorated)
        total = 100000 * (1 + 0.25 * 6/12) = 112500
        per installment = 18750, CFT = 25.00%
    """
    validate_amount(amount)
    validate_installments(installments)
    validate_rate(rate, fixed_surcharge)

    total = strategy.total_with_interest(amount, rate, fixed_surcharge, installments)

    return InstallmentBreakdown(
        original_amount=amount,
        rate=rate,
        fixed_surcharge=fixed_surcharge,
        installments=installments,
        total_with_interest=total,
        per_installment_amount=total / installments,
        effective_annual_cost=effective_annual_cost(amount, total, installments),
        strategy=strategy.name,
    )


def generate_installment_schedule(
    total: float,
    installments: int,
    interval_days: int = 30,
    start_date: date | None = None,
) -> List[Installment]:
    """
    Split a financed total into dated installments.

    Amounts are whole cents; the last installment absorbs the rounding
    remainder so the schedule sums to round(total * 100).

    Example:
        1000.01 over 3 → [333.33, 333.33, 333.35]
    """
    validate_installments(installments)
    if total <= 0:
        return []

    if start_date is None:
        start_date = date.today() + timedelta(days=interval_days)

    total_cents = round(total * 100)
    base_amount = total_cents // installments
    remainder = total_cents % installments

    schedule = []
    for i in range(installments):
        amount = base_amount + (remainder if i == installments - 1 else 0)
        schedule.append(
            Installment(
                number=i + 1,
                due_date=start_date + timedelta(days=i * interval_days),
                amount_cents=amount,
            )
        )

    return schedule
