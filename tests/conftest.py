"""Pytest fixtures for testing"""

import httpx
import pytest
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from cuotificador.api.main import create_app
from cuotificador.api.dependencies import get_permission_policy, get_provider_registry
from cuotificador.domain.catalog import Catalog
from cuotificador.domain.models import Bank, Card
from cuotificador.domain.permissions import Capability, StaticPermissionPolicy
from cuotificador.domain.rate_table import RateTable
from cuotificador.infrastructure.clients.payway import ProviderRegistry
from cuotificador.infrastructure.database.models import Base, BankRecord, CardRecord
from cuotificador.infrastructure.database.repositories import RateRepository
from cuotificador.infrastructure.database.session import build_engine, get_db
from mocks.payway_server.main import app as payway_app


# Test database: one shared in-memory connection
engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PAYWAY_URL = "http://payway.test"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_db(db: Session) -> Session:
    """
    Banks and cards used across tests:
    Galicia (id 1) is integrated with the mock provider, Nacion (id 2) is not,
    Macro (id 3) is integrated with credentials the provider rejects.
    """
    db.add_all(
        [
            BankRecord(id=1, name="Galicia", code="GAL", api_enabled=True, api_url=PAYWAY_URL,
                       api_key="mock-key", api_secret="mock-secret"),
            BankRecord(id=2, name="Nacion", code="BNA"),
            BankRecord(id=3, name="Macro", code="MAC", api_enabled=True, api_url=PAYWAY_URL,
                       api_key="bad-key", api_secret="bad-secret"),
            CardRecord(id=1, name="Visa", code="VISA"),
            CardRecord(id=2, name="Mastercard", code="MASTER"),
            CardRecord(id=3, name="Maestro", code="MAESTRO", card_type="debit"),
        ]
    )
    db.commit()
    return db


@pytest.fixture
def table(db: Session) -> RateTable:
    return RateTable(RateRepository(db))


@pytest.fixture
def catalog() -> Catalog:
    """In-memory catalog matching seeded_db"""
    return Catalog(
        banks=[
            Bank(id=1, name="Galicia", code="GAL", api_enabled=True, api_url=PAYWAY_URL),
            Bank(id=2, name="Nacion", code="BNA"),
            Bank(id=3, name="Macro", code="MAC", api_enabled=True, api_url=PAYWAY_URL),
        ],
        cards=[
            Card(id=1, name="Visa", code="VISA"),
            Card(id=2, name="Mastercard", code="MASTER"),
            Card(id=3, name="Maestro", code="MAESTRO", card_type="debit"),
        ],
    )


@pytest.fixture
def payway_transport() -> httpx.ASGITransport:
    """Routes provider calls to the mock PayWay server in-process"""
    return httpx.ASGITransport(app=payway_app)


@pytest.fixture
def provider_registry(payway_transport) -> ProviderRegistry:
    return ProviderRegistry(transport=payway_transport)


def _build_client(db: Session, registry: ProviderRegistry, granted) -> TestClient:
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_permission_policy] = lambda: StaticPermissionPolicy(granted)
    app.dependency_overrides[get_provider_registry] = lambda: registry
    return TestClient(app)


@pytest.fixture
def client(seeded_db: Session, provider_registry: ProviderRegistry) -> TestClient:
    """Create FastAPI test client with test database and every capability granted"""
    return _build_client(seeded_db, provider_registry, list(Capability))


@pytest.fixture
def readonly_client(seeded_db: Session, provider_registry: ProviderRegistry) -> TestClient:
    """Client whose permission policy grants nothing"""
    return _build_client(seeded_db, provider_registry, [])


class InMemoryRateStore:
    """RateStore double keeping entries in a dict"""

    def __init__(self, entries=()):
        self.rows = {}
        self.next_id = 1
        self.loads = 0
        for entry in entries:
            self.insert_entry(entry)

    def load_entries(self):
        self.loads += 1
        return [replace(e) for e in self.rows.values()]

    def get_entry(self, entry_id):
        return self.rows.get(entry_id)

    def find_entry(self, bank_id, card_id, installments):
        return next((e for e in self.rows.values() if e.key == (bank_id, card_id, installments)), None)

    def insert_entry(self, entry):
        saved = replace(entry, id=self.next_id, updated_at=datetime(2026, 1, 1) + timedelta(minutes=self.next_id))
        self.rows[saved.id] = saved
        self.next_id += 1
        return saved

    def update_entry(self, entry_id, entry):
        saved = replace(entry, id=entry_id, updated_at=self.rows[entry_id].updated_at + timedelta(days=1))
        self.rows[entry_id] = saved
        return saved

    def delete_entry(self, entry_id):
        return self.rows.pop(entry_id, None) is not None


@pytest.fixture
def memory_store() -> InMemoryRateStore:
    return InMemoryRateStore()


@pytest.fixture
def memory_table(memory_store: InMemoryRateStore) -> RateTable:
    return RateTable(memory_store)
