"""Prometheus metrics for the scheduling core.

Labels stay low-cardinality: operation names and outcomes only, never user or
interview ids.
"""

from __future__ import annotations

from prometheus_client import Counter

SCHEDULING_OPERATIONS_TOTAL = Counter(
    "scheduling_operations_total",
    "Scheduling operations by operation and outcome.",
    labelnames=("operation", "outcome"),
)

SCHEDULING_CONFLICTS_TOTAL = Counter(
    "scheduling_slot_conflicts_total",
    "Candidate slots rejected because they overlap a confirmed booking.",
    labelnames=("operation",),
)

SCHEDULING_CAS_RETRIES_TOTAL = Counter(
    "scheduling_cas_retries_total",
    "Conditional writes that lost a race and were retried.",
    labelnames=("operation",),
)


def record_outcome(operation: str, result) -> None:
    """Count a service result: ``ok`` or the failure's error type."""
    if result.is_success():
        outcome = "ok"
    else:
        outcome = type(result.error).__name__
    SCHEDULING_OPERATIONS_TOTAL.labels(operation=operation, outcome=outcome).inc()


__all__ = [
    "SCHEDULING_CAS_RETRIES_TOTAL",
    "SCHEDULING_CONFLICTS_TOTAL",
    "SCHEDULING_OPERATIONS_TOTAL",
    "record_outcome",
]
