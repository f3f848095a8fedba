"""Reconciliation of provider installment plans with the local rate table"""

import logging
from contextlib import nullcontext
from datetime import date, datetime, timezone
from typing import Callable, ContextManager, List, Optional, Protocol, Tuple
from cuotificador.domain.models import Bank, BankSyncResult, ExternalInstallmentPlan, Quote, RateEntry, ResolvedRate
from cuotificador.domain.catalog import Catalog
from cuotificador.domain.rate_table import RateTable
from cuotificador.domain.resolver import RateResolver
from cuotificador.domain.quoting import build_quote
from cuotificador.domain.calculator import FLAT, validate_amount, validate_installments
from cuotificador.domain.exceptions import (
    ExternalProviderError,
    InvalidInstallmentCount,
    InvalidRate,
    NotFound,
)

logger = logging.getLogger(__name__)


class ExternalRateProvider(Protocol):
    """Provider API publishing installment plans per card"""

    async def fetch_installment_plans(self) -> List[ExternalInstallmentPlan]: ...

    async def find_installment_plan(
        self, card_code: str, installments: int
    ) -> Optional[ExternalInstallmentPlan]: ...


ProviderFactory = Callable[[Bank], Optional[ExternalRateProvider]]


class ExternalRateReconciler:
    """
    Merges provider plans into the rate table.

    Each bank is processed on its own: a provider failure or a failed
    upsert is recorded in that bank's result and the next bank continues.
    `transaction` wraps one bank's upserts so they are applied or rolled
    back together.
    """

    def __init__(
        self,
        table: RateTable,
        catalog: Catalog,
        provider_for: ProviderFactory,
        transaction: Callable[[], ContextManager] = nullcontext,
    ):
        self.table = table
        self.catalog = catalog
        self.provider_for = provider_for
        self.transaction = transaction

    async def sync(self, bank_id: int | None = None) -> List[BankSyncResult]:
        """
        Sync one bank, or every API-enabled bank when bank_id is None.

        Raises:
            NotFound: bank_id is unknown or has no API integration
        """
        if bank_id is not None:
            bank = self.catalog.bank(bank_id)
            if bank is None or not bank.api_enabled:
                raise NotFound(f"Bank {bank_id} has no API integration enabled")
            banks = [bank]
        else:
            banks = self.catalog.api_enabled_banks()

        return [await self.sync_bank(bank) for bank in banks]

    async def sync_bank(self, bank: Bank) -> BankSyncResult:
        provider = self.provider_for(bank)
        if provider is None:
            return BankSyncResult(bank.id, bank.name, False, "No provider configured for bank")

        try:
            plans = await provider.fetch_installment_plans()
        except ExternalProviderError as e:
            logger.error(
                "Provider fetch failed",
                extra={"bank_id": bank.id, "error_code": e.code, "error": e.message},
            )
            return BankSyncResult(bank.id, bank.name, False, f"{e.code}: {e.message}")
        except Exception as e:
            logger.exception("Provider fetch crashed", extra={"bank_id": bank.id})
            return BankSyncResult(bank.id, bank.name, False, f"Error: {e}")

        try:
            with self.transaction():
                updated, skipped = self.apply_plans(bank, plans)
        except Exception as e:
            # Savepoint is rolled back, the snapshot may hold rows that no longer exist
            self.table.invalidate()
            logger.exception("Rate sync failed", extra={"bank_id": bank.id})
            return BankSyncResult(bank.id, bank.name, False, f"Error: {e}")

        return BankSyncResult(
            bank.id,
            bank.name,
            True,
            "Rates updated",
            updated_count=updated,
            skipped_count=skipped,
        )

    def apply_plans(self, bank: Bank, plans: List[ExternalInstallmentPlan]) -> Tuple[int, int]:
        """Upsert plans for matched cards; returns (updated, skipped)"""
        updated = 0
        skipped = 0
        synced_at = datetime.now(timezone.utc)

        for plan in plans:
            card = self.catalog.find_card_by_code(plan.card_code)
            if card is None:
                skipped += 1
                logger.debug("Skipping unknown card", extra={"bank_id": bank.id, "card_code": plan.card_code})
                continue

            try:
                self.table.upsert(
                    RateEntry(
                        bank_id=bank.id,
                        card_id=card.id,
                        installments=plan.installments,
                        rate=plan.interest_rate,
                        fixed_surcharge=plan.fixed_surcharge,
                        source="external",
                        last_external_sync=synced_at,
                    )
                )
            except (InvalidInstallmentCount, InvalidRate) as e:
                skipped += 1
                logger.warning("Skipping invalid plan", extra={"bank_id": bank.id, "error": str(e)})
                continue

            updated += 1

        return updated, skipped

    async def quote_point_of_sale(
        self,
        bank_id: int,
        card_id: int,
        installments: int,
        amount: float,
        fallback: RateResolver,
        interval_days: int = 30,
        start_date: date | None = None,
    ) -> Quote:
        """
        Price a sale with the provider's live plan for the card.

        When the bank has no provider or the provider publishes no plan for
        this card and installment count, the rate is resolved locally.
        Nothing is persisted.

        Raises:
            NotFound: card_id is unknown
            ExternalProviderError: provider call failed
        """
        validate_amount(amount)
        validate_installments(installments)

        card = self.catalog.card(card_id)
        if card is None:
            raise NotFound(f"Card {card_id} not found")

        plan = None
        bank = self.catalog.bank(bank_id)
        if bank is not None and bank.api_enabled:
            provider = self.provider_for(bank)
            if provider is not None:
                plan = await provider.find_installment_plan(card.code, installments)

        if plan is not None:
            resolved = ResolvedRate(plan.interest_rate, plan.fixed_surcharge, "external")
            source = "external"
        else:
            resolved = fallback.resolve(bank_id, card_id, installments)
            source = "local"

        return build_quote(
            bank_id, card_id, installments, amount, resolved, FLAT,
            source=source, interval_days=interval_days, start_date=start_date,
        )
