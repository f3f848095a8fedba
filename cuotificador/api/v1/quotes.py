"""POST /v1/quotes* - Installment quotes"""

import time
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from cuotificador.api.v1.schemas import QuoteRequest, QuoteResponse, InstallmentSchema
from cuotificador.api.dependencies import get_provider_registry, get_rate_table, get_request_id
from cuotificador.config import settings
from cuotificador.domain.catalog import Catalog
from cuotificador.domain.calculator import FLAT, PRORATED
from cuotificador.domain.models import Quote
from cuotificador.domain.quoting import quote_from_table
from cuotificador.domain.rate_table import RateTable
from cuotificador.domain.reconciler import ExternalRateReconciler
from cuotificador.domain.resolver import RateResolver
from cuotificador.infrastructure.clients.payway import ProviderRegistry
from cuotificador.infrastructure.database.repositories import load_catalog
from cuotificador.infrastructure.database.session import get_db
from cuotificador.infrastructure.observability.metrics import record_quote
from cuotificador.infrastructure.observability.logging import log_quote

router = APIRouter()


def to_response(quote: Quote, catalog: Catalog) -> QuoteResponse:
    card = catalog.card(quote.card_id)
    _, bank_name = catalog.bank_label(quote.bank_id)

    return QuoteResponse(
        bank_id=quote.bank_id,
        card_id=quote.card_id,
        bank_name=bank_name or None,
        card_name=card.name if card else None,
        installments=quote.installments,
        original_amount=quote.original_amount,
        total_with_interest=round(quote.total_with_interest, 2),
        per_installment_amount=round(quote.per_installment_amount, 2),
        effective_annual_cost=round(quote.effective_annual_cost, 2),
        rate=quote.rate,
        fixed_surcharge=quote.fixed_surcharge,
        source=quote.source,
        tier=quote.tier,
        strategy=quote.strategy,
        schedule=[
            InstallmentSchema(number=i.number, due_date=i.due_date, amount=i.amount_cents / 100)
            for i in quote.schedule
        ],
    )


def _finish(request: Request, path: str, quote: Quote, catalog: Catalog, start_time: float) -> QuoteResponse:
    duration_ms = (time.time() - start_time) * 1000
    record_quote(path, quote)
    log_quote(get_request_id(request), path, quote, duration_ms)
    return to_response(quote, catalog)


@router.post("/quotes", response_model=QuoteResponse)
def create_quote(
    body: QuoteRequest,
    request: Request,
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
):
    """
    Quote with a configured rate (exact bank, then generic bank).

    Interest is prorated by installment count. Returns 404 when no rate is
    configured; no fallback rate is invented.
    """
    start_time = time.time()
    quote = quote_from_table(
        RateResolver.for_configuration(table),
        body.bank_id,
        body.card_id,
        body.installments,
        body.amount,
        strategy=PRORATED,
        interval_days=settings.installment_interval_days,
    )
    return _finish(request, "configured", quote, load_catalog(db), start_time)


@router.post("/quotes/simulate", response_model=QuoteResponse)
def simulate_quote(
    body: QuoteRequest,
    request: Request,
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
):
    """
    Simulator quote: falls back to the static ladder when nothing is
    configured, and applies the rate flat on the total.
    """
    start_time = time.time()
    quote = quote_from_table(
        RateResolver.for_simulation(table),
        body.bank_id,
        body.card_id,
        body.installments,
        body.amount,
        strategy=FLAT,
        interval_days=settings.installment_interval_days,
    )
    return _finish(request, "simulation", quote, load_catalog(db), start_time)


@router.post("/quotes/point-of-sale", response_model=QuoteResponse)
async def point_of_sale_quote(
    body: QuoteRequest,
    request: Request,
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """
    Quote from the provider's live plan for the card, falling back to the
    local rate table. Nothing is persisted.

    Flow:
    1. Provider plan for (card, installments) when the bank has API integration
    2. Otherwise local resolution (exact, generic, ladder)
    3. Flat interest on the total
    """
    start_time = time.time()
    catalog = load_catalog(db)
    reconciler = ExternalRateReconciler(table, catalog, registry.client_for)

    quote = await reconciler.quote_point_of_sale(
        body.bank_id,
        body.card_id,
        body.installments,
        body.amount,
        fallback=RateResolver.for_simulation(table),
        interval_days=settings.installment_interval_days,
    )
    return _finish(request, "point_of_sale", quote, catalog, start_time)
