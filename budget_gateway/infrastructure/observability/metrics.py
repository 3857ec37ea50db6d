"""Prometheus metrics for PO issuance, budget activation, bulk postings and store contention"""

from prometheus_client import Counter, Histogram

# Purchase order metrics
po_issued_counter = Counter(
    "budget_po_issued_total",
    "Purchase orders issued",
    ["department"],
)

po_amount_histogram = Histogram(
    "budget_po_amount",
    "Posted purchase order amounts",
    buckets=[1_000, 10_000, 50_000, 100_000, 500_000, 1_000_000, 5_000_000],
)

po_rejection_counter = Counter(
    "budget_po_rejections_total",
    "Purchase order issuances rejected by a business rule",
    ["reason"],  # error class name
)

# Budget lifecycle metrics
budget_activation_counter = Counter(
    "budget_activation_total",
    "Budgets activated",
)

budget_archived_counter = Counter(
    "budget_archived_total",
    "Budgets archived as a side effect of activating a sibling",
)

# Bulk expense metrics
bulk_expense_posted_counter = Counter(
    "budget_bulk_expense_posted_total",
    "Bulk expense entries posted to a budget",
)

bulk_expense_skipped_counter = Counter(
    "budget_bulk_expense_skipped_total",
    "Bulk expense entries dropped because the department has no budget document",
)

invariant_violation_counter = Counter(
    "budget_invariant_violation_total",
    "Stored state found breaking a core invariant",
    ["kind"],  # multiple_active_budgets
)

# Document store metrics
transaction_conflict_counter = Counter(
    "store_transaction_conflicts_total",
    "Store transaction attempts aborted by a concurrent writer",
)

transaction_duration_histogram = Histogram(
    "store_transaction_duration_seconds",
    "Store transaction attempt duration",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_po_issued(department: str, amount: float) -> None:
    """Record a successful issuance for per-department volume and amount distribution"""
    po_issued_counter.labels(department=department).inc()
    po_amount_histogram.observe(amount)


def record_po_rejection(error: Exception) -> None:
    po_rejection_counter.labels(reason=type(error).__name__).inc()
