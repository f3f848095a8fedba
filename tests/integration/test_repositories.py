"""Integration tests for the SQLAlchemy repositories"""

import pytest
from sqlalchemy.orm import Session
from cuotificador.domain.models import Bank, Card, RateEntry
from cuotificador.domain.exceptions import DuplicateConflict, NotFound
from cuotificador.infrastructure.database.repositories import (
    BankRepository,
    CardRepository,
    RateRepository,
    load_catalog,
)
from cuotificador.infrastructure.database.session import atomic


def test_rate_table_persists_through_repository(seeded_db: Session, table):
    with atomic(seeded_db):
        saved = table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))

    entry = RateRepository(seeded_db).get_entry(saved.id)
    assert entry.key == (1, 1, 3)
    assert entry.updated_at is not None
    assert entry.source == "manual"


def test_generic_bank_rate_needs_no_bank_row(seeded_db: Session):
    repo = RateRepository(seeded_db)
    repo.insert_entry(RateEntry(bank_id=0, card_id=1, installments=3, rate=9))
    seeded_db.commit()

    assert repo.find_entry(0, 1, 3).rate == 9


def test_update_entry_unknown_id(seeded_db: Session):
    with pytest.raises(NotFound):
        RateRepository(seeded_db).update_entry(42, RateEntry(bank_id=1, card_id=1, installments=3, rate=1))


def test_atomic_rolls_back_on_error(seeded_db: Session, table):
    with pytest.raises(RuntimeError):
        with atomic(seeded_db):
            table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
            raise RuntimeError("abort")

    assert RateRepository(seeded_db).load_entries() == []


def test_savepoint_isolates_failed_bank(seeded_db: Session, table):
    """A rolled back savepoint keeps the work done before it"""
    with atomic(seeded_db):
        with seeded_db.begin_nested():
            table.upsert(RateEntry(bank_id=1, card_id=1, installments=3, rate=10))
        try:
            with seeded_db.begin_nested():
                table.upsert(RateEntry(bank_id=3, card_id=1, installments=3, rate=11))
                raise RuntimeError("provider payload rejected")
        except RuntimeError:
            pass

    assert [e.key for e in RateRepository(seeded_db).load_entries()] == [(1, 1, 3)]


def test_search_sorting(seeded_db: Session):
    repo = RateRepository(seeded_db)
    for installments, rate in [(3, 20), (6, 10), (12, 30)]:
        repo.insert_entry(RateEntry(bank_id=1, card_id=1, installments=installments, rate=rate))
    seeded_db.commit()

    items, total = repo.search(sort_by="rate", max_installments=6)
    assert total == 2
    assert [e.rate for e in items] == [10, 20]

    items, _ = repo.search(sort_by="installments", descending=True)
    assert [e.installments for e in items] == [12, 6, 3]


def test_bank_repository(seeded_db: Session):
    repo = BankRepository(seeded_db)

    bank = repo.create_bank(Bank(id=0, name="HSBC", code="HSBC", api_enabled=True, api_key="k"))
    assert bank.id == 4
    assert bank.api_key == "k"

    with pytest.raises(DuplicateConflict):
        repo.create_bank(Bank(id=0, name="hsbc2", code="HSBC"))
    with pytest.raises(DuplicateConflict):
        repo.update_bank(bank.id, Bank(id=0, name="Galicia", code="HSBC"))
    with pytest.raises(NotFound):
        repo.update_bank(99, Bank(id=0, name="X", code="X"))

    assert repo.update_bank(bank.id, Bank(id=0, name="HSBC", code="HSBC")).api_enabled is False


def test_card_repository(seeded_db: Session):
    repo = CardRepository(seeded_db)

    card = repo.create_card(Card(id=0, name="Cabal", code="CABAL", card_type="debit"))
    assert card.card_type == "debit"

    with pytest.raises(DuplicateConflict):
        repo.update_card(card.id, Card(id=0, name="Cabal", code="VISA"))


def test_load_catalog(seeded_db: Session):
    catalog = load_catalog(seeded_db)

    assert [b.name for b in catalog.banks] == ["Galicia", "Macro", "Nacion"]
    assert catalog.bank(1).api_key == "mock-key"
    assert catalog.find_card_by_code("maestro").card_type == "debit"
