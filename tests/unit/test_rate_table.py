"""Unit tests for the rate table"""

import pytest
from cuotificador.domain.models import RateEntry
from cuotificador.domain.exceptions import (
    DuplicateConflict,
    InvalidInstallmentCount,
    InvalidRate,
    NotConfigured,
    NotFound,
)


def test_upsert_inserts_then_updates_same_triple(memory_table, memory_store):
    first = memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
    second = memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=12, fixed_surcharge=5))

    assert first.id == second.id
    assert len(memory_store.rows) == 1
    assert memory_table.get(1, 1, 3).rate == 12
    assert memory_table.get(1, 1, 3).fixed_surcharge == 5


def test_upsert_insert_only_rejects_duplicate(memory_table):
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))

    with pytest.raises(DuplicateConflict):
        memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=11), insert_only=True)
    assert memory_table.get(1, 1, 3).rate == 10


def test_upsert_validates_entry(memory_table, memory_store):
    with pytest.raises(InvalidRate):
        memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=-1))
    with pytest.raises(InvalidRate):
        memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=float("nan")))
    with pytest.raises(InvalidInstallmentCount):
        memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=0, rate=1))
    assert memory_store.rows == {}


def test_snapshot_is_lazy_and_invalidated_on_write(memory_table, memory_store):
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
    assert memory_store.loads == 0

    memory_table.get(1, 1, 3)
    memory_table.get(1, 1, 6)
    assert memory_store.loads == 1

    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=6, rate=15))
    assert memory_table.get(1, 1, 6).rate == 15
    assert memory_store.loads == 2


def test_update_by_id_can_move_triple(memory_table):
    entry = memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))

    memory_table.update(entry.id, RateEntry(bank_id=1, card_id=1, installments=6, rate=14))

    assert memory_table.get(1, 1, 3) is None
    assert memory_table.get(1, 1, 6).id == entry.id


def test_update_rejects_clash_with_other_entry(memory_table):
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
    other = memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=6, rate=15))

    with pytest.raises(DuplicateConflict):
        memory_table.update(other.id, RateEntry(bank_id=1, card_id=1, installments=3, rate=20))


def test_update_and_remove_unknown_id(memory_table):
    with pytest.raises(NotFound):
        memory_table.update(99, RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
    with pytest.raises(NotFound):
        memory_table.remove(99)


def test_remove(memory_table):
    entry = memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
    memory_table.remove(entry.id)
    assert memory_table.entries() == []


def test_list_by_bank_and_card_merges_generic(memory_table):
    """Bank-specific entries override generic ones for the same count"""
    memory_table.upsert(RateEntry(bank_id=0, card_id=1, installments=3, rate=9))
    memory_table.upsert(RateEntry(bank_id=0, card_id=1, installments=12, rate=30))
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=11))
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=6, rate=15))
    memory_table.upsert(RateEntry(bank_id=2, card_id=1, installments=18, rate=45))
    memory_table.upsert(RateEntry(bank_id=1, card_id=2, installments=24, rate=50))

    entries = memory_table.list_by_bank_and_card(1, 1)

    assert [(e.installments, e.rate) for e in entries] == [(3, 11), (6, 15), (12, 30)]
    assert memory_table.installment_options(1, 1) == [3, 6, 12]


def test_installment_options_not_configured(memory_table):
    with pytest.raises(NotConfigured):
        memory_table.installment_options(1, 1)


def test_summary(memory_table):
    memory_table.upsert(RateEntry(bank_id=0, card_id=1, installments=3, rate=10))
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=20))
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=6, rate=30))
    memory_table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=25))

    summary = memory_table.summary(recent=2)

    assert summary.total_rates == 3
    assert summary.entries_per_bank == {1: 2}  # Generic rows are not a bank
    assert summary.entries_per_installments == {3: 2, 6: 1}
    assert summary.average_rate == pytest.approx(65 / 3)
    assert summary.max_rate == 30
    assert summary.min_rate == 10
    assert [e.rate for e in summary.recently_updated] == [25, 30]


def test_summary_empty(memory_table):
    summary = memory_table.summary()
    assert summary.total_rates == 0
    assert summary.average_rate == 0.0
    assert summary.recently_updated == []
