"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from cuotificador.domain.exceptions import PartialImportFailure

GENERIC_BANK_ID = 0
GENERIC_BANK_CODE = "*"
GENERIC_BANK_NAME = "Generic"


@dataclass
class Bank:
    """Issuing bank, optionally integrated with a provider API"""

    id: int
    name: str
    code: str
    active: bool = True
    api_enabled: bool = False
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None


@dataclass
class Card:
    """Card brand accepted at the point of sale"""

    id: int
    name: str
    code: str
    card_type: str = "credit"  # "credit" or "debit"
    active: bool = True


@dataclass
class RateEntry:
    """Interest rate for a (bank, card, installments) triple"""

    bank_id: int  # GENERIC_BANK_ID applies to any bank
    card_id: int
    installments: int
    rate: float  # Annual percent
    fixed_surcharge: float = 0.0
    id: Optional[int] = None
    source: str = "manual"  # "manual" | "import" | "external"
    updated_at: Optional[datetime] = None
    last_external_sync: Optional[datetime] = None

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.bank_id, self.card_id, self.installments)

    @property
    def is_generic(self) -> bool:
        return self.bank_id == GENERIC_BANK_ID


@dataclass
class ResolvedRate:
    """Rate chosen for a quote and the tier it came from"""

    rate: float
    fixed_surcharge: float
    tier: str  # "exact" | "generic" | "fallback" | "external"
    entry: Optional[RateEntry] = None


@dataclass
class Installment:
    """Single payment in an installment schedule"""

    number: int
    due_date: date
    amount_cents: int


@dataclass
class InstallmentBreakdown:
    """Output of the installment calculator"""

    original_amount: float
    rate: float
    fixed_surcharge: float
    installments: int
    total_with_interest: float
    per_installment_amount: float
    effective_annual_cost: float  # Full precision, percent
    strategy: str

    @property
    def effective_annual_cost_display(self) -> float:
        return round(self.effective_annual_cost, 2)


@dataclass
class Quote:
    """Installment quote returned to the caller, never persisted"""

    bank_id: int
    card_id: int
    installments: int
    original_amount: float
    total_with_interest: float
    per_installment_amount: float
    effective_annual_cost: float
    rate: float
    fixed_surcharge: float
    source: str  # "local" | "external"
    tier: str
    strategy: str
    schedule: List[Installment] = field(default_factory=list)


@dataclass
class ExternalInstallmentPlan:
    """Installment plan as published by a provider for one card"""

    card_code: str
    installments: int
    interest_rate: float
    fixed_surcharge: float = 0.0


@dataclass
class BankSyncResult:
    """Outcome of reconciling one bank against its provider"""

    bank_id: int
    bank_name: str
    success: bool
    message: str
    updated_count: int = 0
    skipped_count: int = 0


@dataclass
class ImportSummary:
    """Outcome of a bulk rate import"""

    imported_count: int = 0
    error_count: int = 0
    error_details: List[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.error_count += 1
        self.error_details.append(message)

    def raise_for_errors(self) -> None:
        """Raise PartialImportFailure when any row was rejected"""
        if self.error_count:
            raise PartialImportFailure(self)


@dataclass
class RateTableSummary:
    """Aggregate figures over the rate table"""

    total_rates: int
    entries_per_bank: dict[int, int]
    entries_per_installments: dict[int, int]
    average_rate: float
    max_rate: float
    min_rate: float
    recently_updated: List[RateEntry]
