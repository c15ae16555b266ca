"""Observability utilities."""

from .audit import AuditLogRecord, AuditMiddleware
from .metrics import (
    REQUEST_COUNTER,
    REQUEST_ERROR_COUNTER,
    REQUEST_LATENCY_SECONDS,
    TRANSACTION_DECISIONS,
    TRANSACTION_SUBMISSIONS,
    PrometheusMiddleware,
    metrics_router,
)
from .tracing import initialise_tracing, instrument_fastapi_app, instrument_sqlalchemy_engine

__all__ = [
    "AuditLogRecord",
    "AuditMiddleware",
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "TRANSACTION_DECISIONS",
    "TRANSACTION_SUBMISSIONS",
    "initialise_tracing",
    "instrument_fastapi_app",
    "instrument_sqlalchemy_engine",
    "metrics_router",
]
