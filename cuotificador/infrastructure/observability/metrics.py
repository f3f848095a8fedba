"""Prometheus metrics for quotes, rate resolution, provider sync and imports"""

from typing import List
from prometheus_client import Counter, Histogram
from cuotificador.domain.models import BankSyncResult, ImportSummary, Quote

# Quote metrics
quote_counter = Counter(
    "cuotificador_quotes_total",
    "Installment quotes computed",
    ["path", "source"],  # configured | simulation | point_of_sale ; local | external
)

rate_tier_counter = Counter(
    "cuotificador_rate_resolution_total",
    "Rate resolutions by tier",
    ["tier"],  # exact | generic | fallback | external
)

# Provider metrics
provider_latency_histogram = Histogram(
    "provider_request_latency_seconds",
    "Payment provider response time",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

provider_failures_counter = Counter(
    "provider_request_failures_total",
    "Failed payment provider calls",
    ["operation"],
)

bank_sync_counter = Counter(
    "cuotificador_bank_sync_total",
    "Per-bank rate sync outcomes",
    ["outcome"],  # success | failure
)

# Import metrics
import_rows_counter = Counter(
    "cuotificador_import_rows_total",
    "Rate import rows by outcome",
    ["outcome"],  # imported | rejected
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_quote(path: str, quote: Quote) -> None:
    quote_counter.labels(path=path, source=quote.source).inc()
    rate_tier_counter.labels(tier=quote.tier).inc()


def record_sync(results: List[BankSyncResult]) -> None:
    for result in results:
        bank_sync_counter.labels(outcome="success" if result.success else "failure").inc()


def record_import(summary: ImportSummary) -> None:
    import_rows_counter.labels(outcome="imported").inc(summary.imported_count)
    import_rows_counter.labels(outcome="rejected").inc(summary.error_count)
