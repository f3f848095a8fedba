"""Structured JSON logging for production observability"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from cuotificador.config import settings
from cuotificador.domain.models import BankSyncResult, Quote

# Set by the request middleware for the lifetime of one HTTP request
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Stamp the current request id on records that do not carry one"""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            request_id = request_id_var.get()
            if request_id is not None:
                record.request_id = request_id
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)


def log_quote(request_id: str, path: str, quote: Quote, duration_ms: float) -> None:
    """Log structured quote outcome for analysis"""
    logging.info(
        "Quote computed",
        extra={
            "request_id": request_id,
            "step": "quote_complete",
            "path": path,
            "bank_id": quote.bank_id,
            "card_id": quote.card_id,
            "installments": quote.installments,
            "source": quote.source,
            "tier": quote.tier,
            "strategy": quote.strategy,
            "rate": quote.rate,
            "duration_ms": duration_ms,
        },
    )


def log_sync_result(request_id: str, result: BankSyncResult) -> None:
    """Log one bank's sync outcome"""
    logging.log(
        logging.INFO if result.success else logging.ERROR,
        "Bank rate sync " + ("completed" if result.success else "failed"),
        extra={
            "request_id": request_id,
            "step": "bank_sync",
            "bank_id": result.bank_id,
            "bank_name": result.bank_name,
            "updated_count": result.updated_count,
            "skipped_count": result.skipped_count,
            "sync_message": result.message,
        },
    )
