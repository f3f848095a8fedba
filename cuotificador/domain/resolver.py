"""Rate resolution with generic-bank and static fallback tiers"""

from typing import Optional, Sequence, Tuple
from cuotificador.domain.models import ResolvedRate, GENERIC_BANK_ID
from cuotificador.domain.rate_table import RateTable
from cuotificador.domain.exceptions import NotConfigured
from cuotificador.domain.calculator import validate_installments

# (max installments, annual rate %); None is the open upper bound
STATIC_FALLBACK_LADDER: Tuple[Tuple[Optional[int], float], ...] = (
    (1, 0.0),
    (3, 10.0),
    (6, 15.0),
    (12, 25.0),
    (None, 40.0),
)


def static_fallback_rate(
    installments: int,
    ladder: Sequence[Tuple[Optional[int], float]] = STATIC_FALLBACK_LADDER,
) -> float:
    """Approximate rate keyed only on installment count"""
    for upper_bound, rate in ladder:
        if upper_bound is None or installments <= upper_bound:
            return rate
    raise NotConfigured(f"Fallback ladder has no tier for {installments} installments")


class RateResolver:
    """
    Picks exactly one rate for (bank, card, installments).

    Order, first match wins:
    1. Exact (bank_id, card_id, installments) entry
    2. Generic bank entry (0, card_id, installments)
    3. Static ladder on installment count, only when a ladder is given
    Otherwise NotConfigured.
    """

    def __init__(
        self,
        table: RateTable,
        fallback_ladder: Optional[Sequence[Tuple[Optional[int], float]]] = None,
    ):
        self.table = table
        self.fallback_ladder = fallback_ladder

    @classmethod
    def for_simulation(cls, table: RateTable) -> "RateResolver":
        """Simulator path: never blocks on missing configuration"""
        return cls(table, fallback_ladder=STATIC_FALLBACK_LADDER)

    @classmethod
    def for_configuration(cls, table: RateTable) -> "RateResolver":
        """Configured-rate path: missing rates are reported, never invented"""
        return cls(table, fallback_ladder=None)

    def resolve(self, bank_id: int, card_id: int, installments: int) -> ResolvedRate:
        validate_installments(installments)

        entry = self.table.get(bank_id, card_id, installments)
        if entry is not None:
            return ResolvedRate(entry.rate, entry.fixed_surcharge, "exact", entry)

        entry = self.table.get(GENERIC_BANK_ID, card_id, installments)
        if entry is not None:
            return ResolvedRate(entry.rate, entry.fixed_surcharge, "generic", entry)

        if self.fallback_ladder is not None:
            return ResolvedRate(static_fallback_rate(installments, self.fallback_ladder), 0.0, "fallback")

        raise NotConfigured(
            f"No rate configured for bank {bank_id}, card {card_id}, {installments} installments"
        )
