"""/v1/banks and /v1/cards - Catalog management"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cuotificador.api.v1.schemas import BankRequest, BankSchema, CardRequest, CardSchema
from cuotificador.api.dependencies import require
from cuotificador.domain.models import Bank, Card
from cuotificador.domain.permissions import Capability
from cuotificador.infrastructure.database.repositories import BankRepository, CardRepository
from cuotificador.infrastructure.database.session import atomic, get_db

router = APIRouter()


def bank_schema(bank: Bank) -> BankSchema:
    return BankSchema(
        id=bank.id,
        name=bank.name,
        code=bank.code,
        active=bank.active,
        api_enabled=bank.api_enabled,
        api_url=bank.api_url,
    )


def card_schema(card: Card) -> CardSchema:
    return CardSchema(id=card.id, name=card.name, code=card.code, card_type=card.card_type, active=card.active)


def _bank_from(body: BankRequest) -> Bank:
    # id is assigned by the database
    return Bank(id=0, **body.model_dump())


def _card_from(body: CardRequest) -> Card:
    return Card(id=0, **body.model_dump())


@router.get("/banks", response_model=List[BankSchema])
def list_banks(db: Session = Depends(get_db)):
    return [bank_schema(b) for b in BankRepository(db).list_banks()]


@router.post(
    "/banks",
    response_model=BankSchema,
    status_code=201,
    dependencies=[Depends(require(Capability.MANAGE_BANKS))],
)
def create_bank(body: BankRequest, db: Session = Depends(get_db)):
    """Register a bank; 409 when the name or code is taken"""
    with atomic(db):
        bank = BankRepository(db).create_bank(_bank_from(body))
    return bank_schema(bank)


@router.put(
    "/banks/{bank_id}",
    response_model=BankSchema,
    dependencies=[Depends(require(Capability.MANAGE_BANKS))],
)
def update_bank(bank_id: int, body: BankRequest, db: Session = Depends(get_db)):
    with atomic(db):
        bank = BankRepository(db).update_bank(bank_id, _bank_from(body))
    return bank_schema(bank)


@router.get("/cards", response_model=List[CardSchema])
def list_cards(db: Session = Depends(get_db)):
    return [card_schema(c) for c in CardRepository(db).list_cards()]


@router.post(
    "/cards",
    response_model=CardSchema,
    status_code=201,
    dependencies=[Depends(require(Capability.MANAGE_CARDS))],
)
def create_card(body: CardRequest, db: Session = Depends(get_db)):
    """Register a card; 409 when the name or code is taken"""
    with atomic(db):
        card = CardRepository(db).create_card(_card_from(body))
    return card_schema(card)


@router.put(
    "/cards/{card_id}",
    response_model=CardSchema,
    dependencies=[Depends(require(Capability.MANAGE_CARDS))],
)
def update_card(card_id: int, body: CardRequest, db: Session = Depends(get_db)):
    with atomic(db):
        card = CardRepository(db).update_card(card_id, _card_from(body))
    return card_schema(card)
