"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Anchoring metrics
anchor_requests = Counter(
    "docanchor_anchor_requests_total",
    "Total anchoring requests",
    ["operation", "outcome"],
)

# Verification metrics
verification_requests = Counter(
    "docanchor_verification_requests_total",
    "Total document verifications",
    ["outcome"],
)

# Ledger metrics
ledger_call_duration = Histogram(
    "docanchor_ledger_call_duration_seconds",
    "Ledger round-trip duration",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
)

ledger_errors = Counter(
    "docanchor_ledger_errors_total",
    "Ledger calls that failed",
    ["operation", "error"],
)

# Idempotency metrics
idempotent_replays = Counter(
    "docanchor_idempotent_replays_total",
    "Responses replayed from the idempotency cache",
)
