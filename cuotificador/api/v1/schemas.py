"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class QuoteRequest(BaseModel):
    """Request body for the quote endpoints"""

    bank_id: int = Field(..., ge=0, description="Bank identifier, 0 for the generic bank")
    card_id: int = Field(..., ge=1, description="Card identifier")
    installments: int = Field(..., ge=1, description="Installment count")
    amount: float = Field(..., gt=0, description="Amount to finance")


class InstallmentSchema(BaseModel):
    """Single installment in a quote schedule"""

    number: int
    due_date: date
    amount: float


class QuoteResponse(BaseModel):
    """Installment quote"""

    bank_id: int
    card_id: int
    bank_name: Optional[str] = None
    card_name: Optional[str] = None
    installments: int
    original_amount: float
    total_with_interest: float
    per_installment_amount: float
    effective_annual_cost: float = Field(..., description="CFT percent, 2 decimals")
    rate: float
    fixed_surcharge: float
    source: str
    tier: str
    strategy: str
    schedule: List[InstallmentSchema]


class RateRequest(BaseModel):
    """Body for creating or updating a rate"""

    bank_id: int = Field(..., ge=0)
    card_id: int = Field(..., ge=1)
    installments: int = Field(..., ge=1)
    rate: float = Field(..., ge=0, description="Annual percent")
    fixed_surcharge: float = Field(0.0, ge=0)


class RateSchema(BaseModel):
    """Configured rate"""

    id: int
    bank_id: int
    card_id: int
    installments: int
    rate: float
    fixed_surcharge: float
    source: str
    updated_at: Optional[datetime] = None
    last_external_sync: Optional[datetime] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class RateListResponse(BaseModel):
    items: List[RateSchema]
    pagination: Pagination


class InstallmentOptionsResponse(BaseModel):
    bank_id: int
    card_id: int
    installments: List[int]


class RateSummaryResponse(BaseModel):
    """Aggregate figures over the configured rates"""

    total_rates: int
    total_banks: int
    total_cards: int
    entries_per_bank: Dict[str, int]
    entries_per_installments: Dict[int, int]
    average_rate: float
    max_rate: float
    min_rate: float
    recently_updated: List[RateSchema]


class ImportRowSchema(BaseModel):
    bank_code: str = ""
    card_code: str = ""
    installments: str | int = ""
    rate: str | float = ""
    fixed_surcharge: str | float | None = 0


class ImportRequest(BaseModel):
    rows: List[ImportRowSchema]


class ImportResponse(BaseModel):
    imported_count: int
    error_count: int
    error_details: List[str]


class BankSyncSchema(BaseModel):
    bank_id: int
    bank_name: str
    success: bool
    message: str
    updated_count: int
    skipped_count: int


class SyncResponse(BaseModel):
    results: List[BankSyncSchema]


class BankRequest(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    active: bool = True
    api_enabled: bool = False
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None


class BankSchema(BaseModel):
    """Bank without its credentials"""

    id: int
    name: str
    code: str
    active: bool
    api_enabled: bool
    api_url: Optional[str] = None


class CardRequest(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    card_type: Literal["credit", "debit"] = "credit"
    active: bool = True


class CardSchema(BaseModel):
    id: int
    name: str
    code: str
    card_type: str
    active: bool
