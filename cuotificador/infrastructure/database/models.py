"""SQLAlchemy ORM models for banks, cards and interest rates"""

from sqlalchemy import Column, String, Boolean, Float, DateTime, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class BankRecord(Base):
    """Issuing bank and its provider credentials"""

    __tablename__ = "banks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    code = Column(String(64), nullable=False, unique=True)
    active = Column(Boolean, nullable=False, default=True)
    api_enabled = Column(Boolean, nullable=False, default=False)
    api_url = Column(Text, nullable=True)
    api_key = Column(Text, nullable=True)
    api_secret = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())


class CardRecord(Base):
    """Card brand"""

    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    code = Column(String(64), nullable=False, unique=True)
    card_type = Column(String(16), nullable=False, default="credit")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    rates = relationship("RateRecord", back_populates="card", cascade="all, delete-orphan")


class RateRecord(Base):
    """Interest rate per bank, card and installment count"""

    __tablename__ = "interest_rates"
    __table_args__ = (
        UniqueConstraint("bank_id", "card_id", "installments", name="uq_interest_rates_triple"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 0 is the generic bank, so no foreign key
    bank_id = Column(Integer, nullable=False, index=True)
    card_id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    installments = Column(Integer, nullable=False)
    rate = Column(Float, nullable=False)
    fixed_surcharge = Column(Float, nullable=False, default=0.0)
    source = Column(String(16), nullable=False, default="manual")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    last_external_sync = Column(DateTime(timezone=True), nullable=True)

    card = relationship("CardRecord", back_populates="rates")
