"""Quote assembly - resolved rate + calculator + schedule"""

from datetime import date
from cuotificador.domain.models import Quote, ResolvedRate
from cuotificador.domain.resolver import RateResolver
from cuotificador.domain.calculator import (
    InterestStrategy,
    PRORATED,
    calculate_installments,
    generate_installment_schedule,
    validate_amount,
    validate_installments,
)


def build_quote(
    bank_id: int,
    card_id: int,
    installments: int,
    amount: float,
    resolved: ResolvedRate,
    strategy: InterestStrategy,
    source: str = "local",
    interval_days: int = 30,
    start_date: date | None = None,
) -> Quote:
    """Price an amount with an already resolved rate"""
    breakdown = calculate_installments(
        amount,
        resolved.rate,
        resolved.fixed_surcharge,
        installments,
        strategy=strategy,
    )

    return Quote(
        bank_id=bank_id,
        card_id=card_id,
        installments=installments,
        original_amount=amount,
        total_with_interest=breakdown.total_with_interest,
        per_installment_amount=breakdown.per_installment_amount,
        effective_annual_cost=breakdown.effective_annual_cost,
        rate=resolved.rate,
        fixed_surcharge=resolved.fixed_surcharge,
        source=source,
        tier=resolved.tier,
        strategy=strategy.name,
        schedule=generate_installment_schedule(
            breakdown.total_with_interest, installments, interval_days, start_date
        ),
    )


def quote_from_table(
    resolver: RateResolver,
    bank_id: int,
    card_id: int,
    installments: int,
    amount: float,
    strategy: InterestStrategy = PRORATED,
    interval_days: int = 30,
    start_date: date | None = None,
) -> Quote:
    """
    Resolve the rate locally and price the amount.

    Raises:
        NotConfigured: resolver has no rate and no ladder
        InvalidAmount / InvalidInstallmentCount: bad input
    """
    validate_amount(amount)
    validate_installments(installments)
    resolved = resolver.resolve(bank_id, card_id, installments)
    return build_quote(
        bank_id, card_id, installments, amount, resolved, strategy,
        source="local", interval_days=interval_days, start_date=start_date,
    )
