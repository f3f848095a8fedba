"""
Bulk import and export of the rate table.

Rows are plain mappings so the same logic serves CSV uploads and JSON
bodies. Import resolves banks and cards by code or name (case-insensitive);
a bad row is recorded in the summary and the next row continues.
"""

import csv
import io
import logging
from typing import Any, Dict, Iterable, List, Mapping
from cuotificador.domain.models import ImportSummary, RateEntry
from cuotificador.domain.catalog import Catalog
from cuotificador.domain.rate_table import RateTable
from cuotificador.domain.calculator import validate_rate
from cuotificador.domain.exceptions import (
    DomainException,
    InvalidInstallmentCount,
    InvalidRate,
    NotFound,
)

logger = logging.getLogger(__name__)

IMPORT_COLUMNS = ["bank_code", "card_code", "installments", "rate", "fixed_surcharge"]
EXPORT_COLUMNS = [
    "bank_code",
    "bank_name",
    "card_code",
    "card_name",
    "installments",
    "rate",
    "fixed_surcharge",
    "last_updated",
]


def parse_rate_row(row: Mapping[str, Any], catalog: Catalog) -> RateEntry:
    """
    Turn one import row into a RateEntry.

    Raises:
        NotFound: unknown bank or card
        InvalidInstallmentCount: installments missing or not a positive integer
        InvalidRate: rate or surcharge missing, not a finite number, or negative
    """
    bank_code = str(row.get("bank_code") or "")
    bank_id = catalog.find_bank_id(bank_code) if bank_code else None
    if bank_id is None:
        raise NotFound(f"Bank not found: {bank_code}")

    card_code = str(row.get("card_code") or "")
    card = catalog.find_card(card_code) if card_code else None
    if card is None:
        raise NotFound(f"Card not found: {card_code}")

    try:
        installments = int(str(row.get("installments", "")).strip())
    except ValueError:
        raise InvalidInstallmentCount(f"Invalid installment count: {row.get('installments')}")
    if installments <= 0:
        raise InvalidInstallmentCount(f"Invalid installment count: {installments}")

    try:
        rate = float(str(row.get("rate", "")).strip())
        surcharge = float(str(row.get("fixed_surcharge") or 0).strip())
    except ValueError:
        raise InvalidRate(f"Invalid rate: {row.get('rate')} / {row.get('fixed_surcharge')}")
    validate_rate(rate, surcharge)

    return RateEntry(
        bank_id=bank_id,
        card_id=card.id,
        installments=installments,
        rate=rate,
        fixed_surcharge=surcharge,
        source="import",
    )


def import_rates(table: RateTable, catalog: Catalog, rows: Iterable[Mapping[str, Any]]) -> ImportSummary:
    """Upsert every valid row; invalid rows land in error_details"""
    summary = ImportSummary()

    for number, row in enumerate(rows, start=1):
        try:
            table.upsert(parse_rate_row(row, catalog))
        except DomainException as e:
            summary.record_error(f"Row {number}: {e}")
            continue
        summary.imported_count += 1

    if summary.error_count:
        logger.warning(
            "Rate import finished with errors",
            extra={"imported": summary.imported_count, "errors": summary.error_count},
        )
    return summary


def export_rates(table: RateTable, catalog: Catalog) -> List[Dict[str, Any]]:
    """Tabular projection of the rate table with bank and card names"""
    rows = []
    for entry in table.entries():
        card = catalog.card(entry.card_id)
        bank_code, bank_name = catalog.bank_label(entry.bank_id)
        if card is None or not bank_code:
            continue

        rows.append(
            {
                "bank_code": bank_code,
                "bank_name": bank_name,
                "card_code": card.code,
                "card_name": card.name,
                "installments": entry.installments,
                "rate": entry.rate,
                "fixed_surcharge": entry.fixed_surcharge,
                "last_updated": entry.updated_at.isoformat() if entry.updated_at else "",
            }
        )
    return rows


def read_rate_csv(text: str) -> List[Dict[str, str]]:
    """Parse CSV text with an IMPORT_COLUMNS header"""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    return [{k.strip(): (v or "").strip() for k, v in row.items() if k} for row in reader]


def write_rate_csv(rows: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()
