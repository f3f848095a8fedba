"""Bank and card lookups shared by import, export and reconciliation"""

from dataclasses import dataclass, field
from typing import List, Optional
from cuotificador.domain.models import Bank, Card, GENERIC_BANK_ID, GENERIC_BANK_CODE, GENERIC_BANK_NAME


@dataclass
class Catalog:
    """Snapshot of the known banks and cards"""

    banks: List[Bank] = field(default_factory=list)
    cards: List[Card] = field(default_factory=list)

    def bank(self, bank_id: int) -> Optional[Bank]:
        return next((b for b in self.banks if b.id == bank_id), None)

    def card(self, card_id: int) -> Optional[Card]:
        return next((c for c in self.cards if c.id == card_id), None)

    def bank_label(self, bank_id: int) -> tuple[str, str]:
        """(code, name) for a bank id, including the generic bank"""
        if bank_id == GENERIC_BANK_ID:
            return GENERIC_BANK_CODE, GENERIC_BANK_NAME
        bank = self.bank(bank_id)
        return (bank.code, bank.name) if bank else ("", "")

    def find_bank(self, code_or_name: str) -> Optional[Bank]:
        """Case-insensitive match on code or name"""
        needle = code_or_name.strip().lower()
        return next(
            (b for b in self.banks if b.code.lower() == needle or b.name.lower() == needle),
            None,
        )

    def find_bank_id(self, code_or_name: str) -> Optional[int]:
        if code_or_name.strip() == GENERIC_BANK_CODE:
            return GENERIC_BANK_ID
        bank = self.find_bank(code_or_name)
        return bank.id if bank else None

    def find_card(self, code_or_name: str) -> Optional[Card]:
        """Case-insensitive match on code or name"""
        needle = code_or_name.strip().lower()
        return next(
            (c for c in self.cards if c.code.lower() == needle or c.name.lower() == needle),
            None,
        )

    def find_card_by_code(self, code: str) -> Optional[Card]:
        needle = code.strip().lower()
        return next((c for c in self.cards if c.code.lower() == needle), None)

    def api_enabled_banks(self) -> List[Bank]:
        return [b for b in self.banks if b.api_enabled]
