"""Unit tests for rate resolution"""

import pytest
from cuotificador.domain.models import RateEntry
from cuotificador.domain.resolver import RateResolver, static_fallback_rate
from cuotificador.domain.exceptions import InvalidInstallmentCount, NotConfigured


@pytest.mark.parametrize(
    "installments,expected",
    [(1, 0), (2, 10), (3, 10), (4, 15), (6, 15), (7, 25), (12, 25), (13, 40), (24, 40)],
)
def test_static_fallback_ladder(installments, expected):
    assert static_fallback_rate(installments) == expected


def test_exact_entry_wins(memory_table):
    memory_table.upsert(RateEntry(bank_id=0, card_id=1, installments=3, rate=9))
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=11, fixed_surcharge=20))

    resolved = RateResolver.for_simulation(memory_table).resolve(1, 1, 3)

    assert resolved.tier == "exact"
    assert resolved.rate == 11
    assert resolved.fixed_surcharge == 20
    assert resolved.entry.bank_id == 1


def test_generic_entry_used_when_bank_has_none(memory_table):
    memory_table.upsert(RateEntry(bank_id=0, card_id=1, installments=3, rate=9, fixed_surcharge=4))

    resolved = RateResolver.for_configuration(memory_table).resolve(2, 1, 3)

    assert resolved.tier == "generic"
    assert resolved.rate == 9
    assert resolved.fixed_surcharge == 4


def test_configured_rate_beats_ladder(memory_table):
    """A table rate of 12 for 3 installments is used, not the ladder's 10"""
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=12))

    resolved = RateResolver.for_simulation(memory_table).resolve(1, 1, 3)

    assert resolved.rate == 12
    assert resolved.tier == "exact"


def test_ladder_only_for_simulation(memory_table):
    resolved = RateResolver.for_simulation(memory_table).resolve(1, 1, 6)

    assert resolved.tier == "fallback"
    assert resolved.rate == 15
    assert resolved.fixed_surcharge == 0
    assert resolved.entry is None

    with pytest.raises(NotConfigured):
        RateResolver.for_configuration(memory_table).resolve(1, 1, 6)


def test_other_card_does_not_match(memory_table):
    memory_table.upsert(RateEntry(bank_id=1, card_id=2, installments=3, rate=12))

    with pytest.raises(NotConfigured):
        RateResolver.for_configuration(memory_table).resolve(1, 1, 3)


def test_custom_ladder(memory_table):
    resolver = RateResolver(memory_table, fallback_ladder=((6, 5.0),))

    assert resolver.resolve(1, 1, 6).rate == 5.0
    with pytest.raises(NotConfigured):
        resolver.resolve(1, 1, 7)


def test_rejects_invalid_installments(memory_table):
    with pytest.raises(InvalidInstallmentCount):
        RateResolver.for_simulation(memory_table).resolve(1, 1, 0)
