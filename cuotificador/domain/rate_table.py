"""Rate table - authoritative set of interest rates for a session"""

from typing import Dict, List, Optional, Protocol, Tuple
from cuotificador.domain.models import RateEntry, RateTableSummary, GENERIC_BANK_ID
from cuotificador.domain.exceptions import DuplicateConflict, NotConfigured, NotFound
from cuotificador.domain.calculator import validate_installments, validate_rate

RateKey = Tuple[int, int, int]


class RateStore(Protocol):
    """Durable storage for rate entries, keyed by (bank_id, card_id, installments)"""

    def load_entries(self) -> List[RateEntry]: ...

    def get_entry(self, entry_id: int) -> Optional[RateEntry]: ...

    def find_entry(self, bank_id: int, card_id: int, installments: int) -> Optional[RateEntry]: ...

    def insert_entry(self, entry: RateEntry) -> RateEntry: ...

    def update_entry(self, entry_id: int, entry: RateEntry) -> RateEntry: ...

    def delete_entry(self, entry_id: int) -> bool: ...


class RateTable:
    """
    Snapshot of the rate store used for lookups.

    Reads are served from an in-memory snapshot loaded lazily. Every mutation
    writes through to the store and invalidates the snapshot, so the next
    read reloads it.
    """

    def __init__(self, store: RateStore):
        self.store = store
        self._entries: Optional[Dict[RateKey, RateEntry]] = None

    def reload(self) -> None:
        """Replace the snapshot with the store's current contents"""
        self._entries = {entry.key: entry for entry in self.store.load_entries()}

    def invalidate(self) -> None:
        self._entries = None

    def _snapshot(self) -> Dict[RateKey, RateEntry]:
        if self._entries is None:
            self.reload()
        return self._entries

    def entries(self) -> List[RateEntry]:
        return sorted(self._snapshot().values(), key=lambda e: e.key)

    def get(self, bank_id: int, card_id: int, installments: int) -> Optional[RateEntry]:
        """Exact lookup, no generic fallback"""
        return self._snapshot().get((bank_id, card_id, installments))

    def upsert(self, entry: RateEntry, insert_only: bool = False) -> RateEntry:
        """
        Insert the entry, or update rate and surcharge of the existing one
        for the same (bank_id, card_id, installments).

        Raises:
            DuplicateConflict: insert_only and the triple already exists
        """
        validate_installments(entry.installments)
        validate_rate(entry.rate, entry.fixed_surcharge)

        existing = self.store.find_entry(entry.bank_id, entry.card_id, entry.installments)
        if existing is not None and insert_only:
            raise DuplicateConflict(
                f"Rate already configured for bank {entry.bank_id}, card {entry.card_id}, "
                f"{entry.installments} installments"
            )

        if existing is not None:
            saved = self.store.update_entry(existing.id, entry)
        else:
            saved = self.store.insert_entry(entry)

        self.invalidate()
        return saved

    def update(self, entry_id: int, entry: RateEntry) -> RateEntry:
        """
        Overwrite an entry by id, including its triple.

        Raises:
            NotFound: no entry with that id
            DuplicateConflict: the new triple belongs to another entry
        """
        validate_installments(entry.installments)
        validate_rate(entry.rate, entry.fixed_surcharge)

        if self.store.get_entry(entry_id) is None:
            raise NotFound(f"Rate {entry_id} not found")

        clash = self.store.find_entry(entry.bank_id, entry.card_id, entry.installments)
        if clash is not None and clash.id != entry_id:
            raise DuplicateConflict(
                f"Rate {clash.id} already covers bank {entry.bank_id}, card {entry.card_id}, "
                f"{entry.installments} installments"
            )

        saved = self.store.update_entry(entry_id, entry)
        self.invalidate()
        return saved

    def remove(self, entry_id: int) -> None:
        """
        Raises:
            NotFound: no entry with that id
        """
        if not self.store.delete_entry(entry_id):
            raise NotFound(f"Rate {entry_id} not found")
        self.invalidate()

    def list_by_bank_and_card(self, bank_id: int, card_id: int) -> List[RateEntry]:
        """
        Entries applicable to a bank/card, ascending by installments.

        Generic entries fill the installment counts the bank does not
        configure; a bank-specific entry overrides the generic one.
        """
        merged: Dict[int, RateEntry] = {}
        for entry in self._snapshot().values():
            if entry.card_id != card_id:
                continue
            if entry.bank_id == bank_id:
                merged[entry.installments] = entry
            elif entry.bank_id == GENERIC_BANK_ID:
                merged.setdefault(entry.installments, entry)

        return [merged[n] for n in sorted(merged)]

    def installment_options(self, bank_id: int, card_id: int) -> List[int]:
        """
        Raises:
            NotConfigured: no plan exists for the bank/card
        """
        options = [e.installments for e in self.list_by_bank_and_card(bank_id, card_id)]
        if not options:
            raise NotConfigured(
                f"No installment plans configured for bank {bank_id} and card {card_id}"
            )
        return options

    def summary(self, recent: int = 5) -> RateTableSummary:
        entries = self.entries()

        per_bank: Dict[int, int] = {}
        per_installments: Dict[int, int] = {}
        for entry in entries:
            if not entry.is_generic:
                per_bank[entry.bank_id] = per_bank.get(entry.bank_id, 0) + 1
            per_installments[entry.installments] = per_installments.get(entry.installments, 0) + 1

        rates = [e.rate for e in entries]
        updated = sorted(
            (e for e in entries if e.updated_at is not None),
            key=lambda e: e.updated_at,
            reverse=True,
        )

        return RateTableSummary(
            total_rates=len(entries),
            entries_per_bank=per_bank,
            entries_per_installments=dict(sorted(per_installments.items())),
            average_rate=sum(rates) / len(rates) if rates else 0.0,
            max_rate=max(rates, default=0.0),
            min_rate=min(rates, default=0.0),
            recently_updated=updated[:recent],
        )
