"""Prometheus metrics for monitoring ledger writes, settlements and errors"""

from prometheus_client import Counter, Histogram

# Ledger metrics
payment_operation_counter = Counter(
    "ledger_payment_operations_total",
    "Payment ledger writes",
    ["operation", "kind"],  # record | amend | remove ; revenue | expense | transfer
)

payment_amount_histogram = Histogram(
    "ledger_payment_amount_cents",
    "Amounts of recorded payments",
    ["kind"],
    buckets=[1_000, 5_000, 10_000, 50_000, 100_000, 500_000, 1_000_000],
)

ledger_error_counter = Counter(
    "ledger_errors_total",
    "Ledger operations rejected or failed",
    ["error"],  # exception class name
)

ledger_operation_histogram = Histogram(
    "ledger_operation_duration_seconds",
    "Ledger write latency",
    ["operation"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# Crediário metrics
credit_settlement_counter = Counter(
    "ledger_credit_settlements_total",
    "Crediário payments collected",
    ["outcome"],  # partial | paid_off | reversed
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment_operation(operation: str, kind: str, amount_cents: int | None = None) -> None:
    """Count a ledger write and, for new payments, observe the amount"""
    payment_operation_counter.labels(operation=operation, kind=kind).inc()
    if amount_cents is not None:
        payment_amount_histogram.labels(kind=kind).observe(amount_cents)


def record_ledger_error(error: Exception) -> None:
    ledger_error_counter.labels(error=type(error).__name__).inc()


def record_settlement(balance_due_cents: int, reversed: bool = False) -> None:
    """Record whether a crediário payment settled the sale, or was taken back"""
    if reversed:
        outcome = "reversed"
    else:
        outcome = "paid_off" if balance_due_cents == 0 else "partial"
    credit_settlement_counter.labels(outcome=outcome).inc()
