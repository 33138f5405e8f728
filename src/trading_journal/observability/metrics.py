"""Prometheus metrics for the journal service.

Exposed on the API's ``/metrics`` route.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest

SYSTEM_INFO = Info("trading_journal", "Trading journal service information")

# ---------------------------------------------------------------------------
# Metrics engine
# ---------------------------------------------------------------------------

TRADES_EVALUATED = Counter(
    "trading_journal_trades_evaluated_total",
    "Trade records run through the metrics engine",
)

METRIC_FALLBACKS = Counter(
    "trading_journal_metric_fallbacks_total",
    "Trades whose metrics fell back to stored values",
    ["field"],
)

ANALYTICS_LATENCY = Histogram(
    "trading_journal_analytics_seconds",
    "Aggregate statistics computation time",
    ["report"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

STORE_FAILURES = Counter(
    "trading_journal_store_failures_total",
    "Trade store operations that failed",
    ["operation"],
)


def record_evaluation() -> None:
    """Record one trade evaluation."""
    TRADES_EVALUATED.inc()


def record_fallback(field: str) -> None:
    """Record a metric recomputation that degraded to the stored value."""
    METRIC_FALLBACKS.labels(field=field).inc()


def record_store_failure(operation: str) -> None:
    """Record a failed store operation."""
    STORE_FAILURES.labels(operation=operation).inc()


def render_latest() -> tuple[bytes, str]:
    """Current exposition payload and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST
