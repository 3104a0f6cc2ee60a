"""Prometheus metrics collection and export.

This module provides Prometheus instrumentation for the board backend:
counters for user actions and database units of work, and a histogram for
transaction latency.

Metric Types:
    Counters (always increase):
        - board_actions_total: Service operations by action and outcome
        - database_operations_total: DB units of work by operation and status
        - errors_total: Errors by type and component

    Histograms (track distributions):
        - database_query_duration_seconds: Transaction latency by operation

Usage:
    ```python
    from boarddb.metrics import board_actions_total

    board_actions_total.labels(action="like_post", status="success").inc()
    ```

    Exposing a metrics endpoint from the request-handling layer:

    ```python
    from boarddb.metrics import generate_metrics_output

    @app.get("/metrics")
    def metrics():
        return Response(generate_metrics_output(), media_type="text/plain")
    ```
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from boarddb.config import settings

# Custom registry: no default process/platform collectors
registry = CollectorRegistry()

# Latency buckets in seconds, from 1ms to 5s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
)


# ========== COUNTER METRICS ==========

board_actions_total = Counter(
    "board_actions_total",
    "Total number of board service operations",
    labelnames=["action", "status"],
    registry=registry,
)
"""Counter for service operations.

Labels:
    action: Operation name (e.g., "create_post", "like_comment", "scrap_post")
    status: Outcome ("success", "noop", or the error class name)
"""

database_operations_total = Counter(
    "database_operations_total",
    "Total number of database units of work",
    labelnames=["operation", "status"],
    registry=registry,
)
"""Counter for database transactions.

Labels:
    operation: Operation that opened the transaction
    status: "commit" or "rollback"
"""

errors_total = Counter(
    "errors_total",
    "Total number of errors encountered",
    labelnames=["error_type", "component"],
    registry=registry,
)
"""Counter for errors by type and component.

Labels:
    error_type: Exception class name (e.g., "ConflictError", "PersistenceError")
    component: Component where the error surfaced ("database", "service")
"""


# ========== HISTOGRAM METRICS ==========

database_query_duration_seconds = Histogram(
    "database_query_duration_seconds",
    "Duration of database units of work in seconds",
    labelnames=["operation"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=registry,
)


# ========== HELPER FUNCTIONS ==========


def record_action(action: str, status: str = "success") -> None:
    """Count one service operation outcome (no-op when metrics are disabled)."""
    if settings.metrics_enabled:
        board_actions_total.labels(action=action, status=status).inc()


def record_error(error: BaseException, component: str) -> None:
    """Count an error surfaced by ``component``."""
    if settings.metrics_enabled:
        errors_total.labels(error_type=type(error).__name__, component=component).inc()


@contextmanager
def track_transaction(operation: str) -> Iterator[None]:
    """Time a database unit of work and count its commit/rollback."""
    start = time.perf_counter()
    status = "commit"
    try:
        yield
    except BaseException:
        status = "rollback"
        raise
    finally:
        if settings.metrics_enabled:
            database_query_duration_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )
            database_operations_total.labels(operation=operation, status=status).inc()


def generate_metrics_output() -> bytes:
    """Generate Prometheus metrics output in text exposition format."""
    return generate_latest(registry)


__all__ = [
    "registry",
    "board_actions_total",
    "database_operations_total",
    "errors_total",
    "database_query_duration_seconds",
    "record_action",
    "record_error",
    "track_transaction",
    "generate_metrics_output",
    "DEFAULT_LATENCY_BUCKETS",
]
