"""Data access layer for banks, cards and interest rates"""

from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session
from cuotificador.infrastructure.database.models import BankRecord, CardRecord, RateRecord
from cuotificador.domain.models import Bank, Card, RateEntry
from cuotificador.domain.catalog import Catalog
from cuotificador.domain.exceptions import DuplicateConflict, NotFound

RATE_SORT_COLUMNS = {
    "bank": RateRecord.bank_id,
    "card": RateRecord.card_id,
    "installments": RateRecord.installments,
    "rate": RateRecord.rate,
    "surcharge": RateRecord.fixed_surcharge,
}


def _to_rate_entry(record: RateRecord) -> RateEntry:
    return RateEntry(
        id=record.id,
        bank_id=record.bank_id,
        card_id=record.card_id,
        installments=record.installments,
        rate=record.rate,
        fixed_surcharge=record.fixed_surcharge,
        source=record.source,
        updated_at=record.updated_at,
        last_external_sync=record.last_external_sync,
    )


def _to_bank(record: BankRecord) -> Bank:
    return Bank(
        id=record.id,
        name=record.name,
        code=record.code,
        active=record.active,
        api_enabled=record.api_enabled,
        api_url=record.api_url,
        api_key=record.api_key,
        api_secret=record.api_secret,
    )


def _to_card(record: CardRecord) -> Card:
    return Card(
        id=record.id,
        name=record.name,
        code=record.code,
        card_type=record.card_type,
        active=record.active,
    )


class RateRepository:
    """Repository for interest rates, usable as a RateTable store"""

    def __init__(self, db: Session):
        self.db = db

    def load_entries(self) -> List[RateEntry]:
        records = (
            self.db.query(RateRecord)
            .order_by(RateRecord.bank_id, RateRecord.card_id, RateRecord.installments)
            .all()
        )
        return [_to_rate_entry(r) for r in records]

    def get_entry(self, entry_id: int) -> Optional[RateEntry]:
        record = self.db.get(RateRecord, entry_id)
        return _to_rate_entry(record) if record else None

    def find_entry(self, bank_id: int, card_id: int, installments: int) -> Optional[RateEntry]:
        record = (
            self.db.query(RateRecord)
            .filter(
                RateRecord.bank_id == bank_id,
                RateRecord.card_id == card_id,
                RateRecord.installments == installments,
            )
            .first()
        )
        return _to_rate_entry(record) if record else None

    def insert_entry(self, entry: RateEntry) -> RateEntry:
        record = RateRecord(
            bank_id=entry.bank_id,
            card_id=entry.card_id,
            installments=entry.installments,
            rate=entry.rate,
            fixed_surcharge=entry.fixed_surcharge,
            source=entry.source,
            last_external_sync=entry.last_external_sync,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return _to_rate_entry(record)

    def update_entry(self, entry_id: int, entry: RateEntry) -> RateEntry:
        record = self.db.get(RateRecord, entry_id)
        if record is None:
            raise NotFound(f"Rate {entry_id} not found")

        record.bank_id = entry.bank_id
        record.card_id = entry.card_id
        record.installments = entry.installments
        record.rate = entry.rate
        record.fixed_surcharge = entry.fixed_surcharge
        record.source = entry.source
        if entry.last_external_sync is not None:
            record.last_external_sync = entry.last_external_sync
        self.db.flush()
        return _to_rate_entry(record)

    def delete_entry(self, entry_id: int) -> bool:
        record = self.db.get(RateRecord, entry_id)
        if record is None:
            return False
        self.db.delete(record)
        self.db.flush()
        return True

    def search(
        self,
        bank_id: Optional[int] = None,
        card_id: Optional[int] = None,
        min_installments: Optional[int] = None,
        max_installments: Optional[int] = None,
        min_rate: Optional[float] = None,
        max_rate: Optional[float] = None,
        sort_by: str = "bank",
        descending: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[RateEntry], int]:
        """Filtered, sorted page of rates plus the total match count"""
        query = self.db.query(RateRecord)

        if bank_id is not None:
            query = query.filter(RateRecord.bank_id == bank_id)
        if card_id is not None:
            query = query.filter(RateRecord.card_id == card_id)
        if min_installments is not None:
            query = query.filter(RateRecord.installments >= min_installments)
        if max_installments is not None:
            query = query.filter(RateRecord.installments <= max_installments)
        if min_rate is not None:
            query = query.filter(RateRecord.rate >= min_rate)
        if max_rate is not None:
            query = query.filter(RateRecord.rate <= max_rate)

        total = query.count()

        column = RATE_SORT_COLUMNS.get(sort_by, RateRecord.bank_id)
        query = query.order_by(column.desc() if descending else column.asc(), RateRecord.id)

        records = query.offset((page - 1) * limit).limit(limit).all()
        return [_to_rate_entry(r) for r in records], total


class BankRepository:
    """Repository for banks"""

    def __init__(self, db: Session):
        self.db = db

    def list_banks(self) -> List[Bank]:
        return [_to_bank(r) for r in self.db.query(BankRecord).order_by(BankRecord.name).all()]

    def _check_unique(self, name: str, code: str, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(BankRecord).filter(or_(BankRecord.name == name, BankRecord.code == code))
        if exclude_id is not None:
            query = query.filter(BankRecord.id != exclude_id)
        if query.first() is not None:
            raise DuplicateConflict("A bank with that name or code already exists")

    def create_bank(self, bank: Bank) -> Bank:
        self._check_unique(bank.name, bank.code)
        record = BankRecord(
            name=bank.name,
            code=bank.code,
            active=bank.active,
            api_enabled=bank.api_enabled,
            api_url=bank.api_url,
            api_key=bank.api_key,
            api_secret=bank.api_secret,
        )
        self.db.add(record)
        self.db.flush()
        return _to_bank(record)

    def update_bank(self, bank_id: int, bank: Bank) -> Bank:
        record = self.db.get(BankRecord, bank_id)
        if record is None:
            raise NotFound(f"Bank {bank_id} not found")
        self._check_unique(bank.name, bank.code, exclude_id=bank_id)

        record.name = bank.name
        record.code = bank.code
        record.active = bank.active
        record.api_enabled = bank.api_enabled
        record.api_url = bank.api_url
        record.api_key = bank.api_key
        record.api_secret = bank.api_secret
        self.db.flush()
        return _to_bank(record)


class CardRepository:
    """Repository for cards"""

    def __init__(self, db: Session):
        self.db = db

    def list_cards(self) -> List[Card]:
        return [_to_card(r) for r in self.db.query(CardRecord).order_by(CardRecord.name).all()]

    def _check_unique(self, name: str, code: str, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(CardRecord).filter(or_(CardRecord.name == name, CardRecord.code == code))
        if exclude_id is not None:
            query = query.filter(CardRecord.id != exclude_id)
        if query.first() is not None:
            raise DuplicateConflict("A card with that name or code already exists")

    def create_card(self, card: Card) -> Card:
        self._check_unique(card.name, card.code)
        record = CardRecord(
            name=card.name,
            code=card.code,
            card_type=card.card_type,
            active=card.active,
        )
        self.db.add(record)
        self.db.flush()
        return _to_card(record)

    def update_card(self, card_id: int, card: Card) -> Card:
        record = self.db.get(CardRecord, card_id)
        if record is None:
            raise NotFound(f"Card {card_id} not found")
        self._check_unique(card.name, card.code, exclude_id=card_id)

        record.name = card.name
        record.code = card.code
        record.card_type = card.card_type
        record.active = card.active
        self.db.flush()
        return _to_card(record)


def load_catalog(db: Session) -> Catalog:
    """Snapshot of all banks and cards"""
    return Catalog(banks=BankRepository(db).list_banks(), cards=CardRepository(db).list_cards())
