"""/v1/rates - Rate table administration, import/export and provider sync"""

import math
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from cuotificador.api.v1.schemas import (
    BankSyncSchema,
    ImportRequest,
    ImportResponse,
    InstallmentOptionsResponse,
    Pagination,
    RateListResponse,
    RateRequest,
    RateSchema,
    RateSummaryResponse,
    SyncResponse,
)
from cuotificador.api.dependencies import get_provider_registry, get_rate_table, get_request_id, require
from cuotificador.domain.importer import export_rates, import_rates, read_rate_csv, write_rate_csv
from cuotificador.domain.catalog import Catalog
from cuotificador.domain.exceptions import NotFound
from cuotificador.domain.models import GENERIC_BANK_ID, ImportSummary, RateEntry
from cuotificador.domain.permissions import Capability
from cuotificador.domain.rate_table import RateTable
from cuotificador.domain.reconciler import ExternalRateReconciler
from cuotificador.infrastructure.clients.payway import ProviderRegistry
from cuotificador.infrastructure.database.repositories import RateRepository, load_catalog
from cuotificador.infrastructure.database.session import atomic, get_db
from cuotificador.infrastructure.observability.metrics import record_import, record_sync
from cuotificador.infrastructure.observability.logging import log_sync_result

router = APIRouter()


def to_schema(entry: RateEntry) -> RateSchema:
    return RateSchema(
        id=entry.id,
        bank_id=entry.bank_id,
        card_id=entry.card_id,
        installments=entry.installments,
        rate=entry.rate,
        fixed_surcharge=entry.fixed_surcharge,
        source=entry.source,
        updated_at=entry.updated_at,
        last_external_sync=entry.last_external_sync,
    )


def to_entry(body: RateRequest) -> RateEntry:
    return RateEntry(
        bank_id=body.bank_id,
        card_id=body.card_id,
        installments=body.installments,
        rate=body.rate,
        fixed_surcharge=body.fixed_surcharge,
    )


@router.get("/rates", response_model=RateListResponse)
def list_rates(
    bank_id: Optional[int] = Query(None, ge=0),
    card_id: Optional[int] = Query(None, ge=1),
    min_installments: Optional[int] = Query(None, ge=1),
    max_installments: Optional[int] = Query(None, ge=1),
    min_rate: Optional[float] = Query(None, ge=0),
    max_rate: Optional[float] = Query(None, ge=0),
    sort_by: str = Query("bank", pattern="^(bank|card|installments|rate|surcharge)$"),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Filtered, sorted and paginated rate listing"""
    items, total = RateRepository(db).search(
        bank_id=bank_id,
        card_id=card_id,
        min_installments=min_installments,
        max_installments=max_installments,
        min_rate=min_rate,
        max_rate=max_rate,
        sort_by=sort_by,
        descending=sort_dir == "desc",
        page=page,
        limit=limit,
    )
    return RateListResponse(
        items=[to_schema(e) for e in items],
        pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    )



def _check_references(catalog: Catalog, body: RateRequest) -> None:
    if body.bank_id != GENERIC_BANK_ID and catalog.bank(body.bank_id) is None:
        raise NotFound(f"Bank {body.bank_id} not found")
    if catalog.card(body.card_id) is None:
        raise NotFound(f"Card {body.card_id} not found")

@router.post(
    "/rates",
    response_model=RateSchema,
    status_code=201,
    dependencies=[Depends(require(Capability.CONFIGURE_RATES))],
)
def create_rate(body: RateRequest, db: Session = Depends(get_db), table: RateTable = Depends(get_rate_table)):
    """Create a rate; 404 for an unknown bank or card, 409 when the triple exists"""
    _check_references(load_catalog(db), body)
    with atomic(db):
        entry = table.upsert(to_entry(body), insert_only=True)
    return to_schema(entry)


@router.put(
    "/rates/{entry_id}",
    response_model=RateSchema,
    dependencies=[Depends(require(Capability.CONFIGURE_RATES))],
)
def update_rate(
    entry_id: int,
    body: RateRequest,
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
):
    _check_references(load_catalog(db), body)
    with atomic(db):
        entry = table.update(entry_id, to_entry(body))
    return to_schema(entry)


@router.delete(
    "/rates/{entry_id}",
    status_code=204,
    dependencies=[Depends(require(Capability.CONFIGURE_RATES))],
)
def delete_rate(entry_id: int, db: Session = Depends(get_db), table: RateTable = Depends(get_rate_table)):
    with atomic(db):
        table.remove(entry_id)
    return Response(status_code=204)


@router.get("/rates/options", response_model=InstallmentOptionsResponse)
def installment_options(
    bank_id: int = Query(..., ge=0),
    card_id: int = Query(..., ge=1),
    table: RateTable = Depends(get_rate_table),
):
    """Installment counts available for a bank and card, generic plans included"""
    return InstallmentOptionsResponse(
        bank_id=bank_id,
        card_id=card_id,
        installments=table.installment_options(bank_id, card_id),
    )


@router.get("/rates/summary", response_model=RateSummaryResponse)
def rate_summary(db: Session = Depends(get_db), table: RateTable = Depends(get_rate_table)):
    catalog = load_catalog(db)
    summary = table.summary()

    return RateSummaryResponse(
        total_rates=summary.total_rates,
        total_banks=len(catalog.banks),
        total_cards=len(catalog.cards),
        entries_per_bank={
            catalog.bank_label(bank_id)[1] or str(bank_id): count
            for bank_id, count in summary.entries_per_bank.items()
        },
        entries_per_installments=summary.entries_per_installments,
        average_rate=summary.average_rate,
        max_rate=summary.max_rate,
        min_rate=summary.min_rate,
        recently_updated=[to_schema(e) for e in summary.recently_updated],
    )


def _run_import(db: Session, table: RateTable, rows, strict: bool) -> ImportSummary:
    with atomic(db):
        summary = import_rates(table, load_catalog(db), rows)
        record_import(summary)
        if strict:
            summary.raise_for_errors()
    return summary


@router.post(
    "/rates/import",
    response_model=ImportResponse,
    dependencies=[Depends(require(Capability.IMPORT_RATES))],
)
def import_rate_rows(
    body: ImportRequest,
    strict: bool = Query(False, description="Roll back the whole import if any row fails"),
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
):
    """Bulk upsert from JSON rows"""
    summary = _run_import(db, table, [row.model_dump() for row in body.rows], strict)
    return ImportResponse(**vars(summary))


@router.post(
    "/rates/import/csv",
    response_model=ImportResponse,
    dependencies=[Depends(require(Capability.IMPORT_RATES))],
)
async def import_rate_csv(
    request: Request,
    strict: bool = Query(False, description="Roll back the whole import if any row fails"),
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
):
    """Bulk upsert from a text/csv body: bank_code,card_code,installments,rate,fixed_surcharge"""
    text = (await request.body()).decode("utf-8-sig")
    summary = _run_import(db, table, read_rate_csv(text), strict)
    return ImportResponse(**vars(summary))


@router.get("/rates/export")
def export_rate_table(
    format: str = Query("csv", pattern="^(csv|json)$"),
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
):
    rows = export_rates(table, load_catalog(db))
    if format == "json":
        return {"rows": rows}
    return PlainTextResponse(
        write_rate_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="rates.csv"'},
    )


@router.post(
    "/rates/sync",
    response_model=SyncResponse,
    dependencies=[Depends(require(Capability.SYNC_EXTERNAL_RATES))],
)
async def sync_rates(
    request: Request,
    bank_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    table: RateTable = Depends(get_rate_table),
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """
    Pull installment plans from every API-enabled bank (or one bank).

    A bank whose provider fails is reported with success=false; the other
    banks are still synced and committed.
    """
    request_id = get_request_id(request)

    with atomic(db):
        reconciler = ExternalRateReconciler(
            table,
            load_catalog(db),
            registry.client_for,
            transaction=db.begin_nested,
        )
        results = await reconciler.sync(bank_id)

    record_sync(results)
    for result in results:
        log_sync_result(request_id, result)

    return SyncResponse(results=[BankSyncSchema(**vars(r)) for r in results])
