"""OpenTelemetry tracing set-up for the API process."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)

try:  # pragma: no cover - exporter may not be available in minimal environments
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
except ModuleNotFoundError:  # pragma: no cover - OTLP is an optional extra
    OTLPSpanExporter = None  # type: ignore[assignment]

_SERVICE_NAME_ATTRIBUTE = "service.name"


def create_tracer_provider(service_name: str, endpoint: str | None) -> TracerProvider:
    """Build a provider exporting over OTLP when ``endpoint`` is set, else to the console."""

    provider = TracerProvider(resource=Resource(attributes={_SERVICE_NAME_ATTRIBUTE: service_name}))
    if endpoint and OTLPSpanExporter is not None:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    else:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


def initialise_tracing(*, service_name: str, endpoint: str | None = None) -> None:
    """Install a global tracer provider unless one for ``service_name`` is already set."""

    current_provider = trace.get_tracer_provider()
    if (
        isinstance(current_provider, TracerProvider)
        and getattr(current_provider.resource, "attributes", {}).get(_SERVICE_NAME_ATTRIBUTE)
        == service_name
    ):
        return

    trace.set_tracer_provider(create_tracer_provider(service_name, endpoint))
    LoggingInstrumentor().instrument(set_logging_format=False)


def instrument_fastapi_app(app: FastAPI) -> None:
    FastAPIInstrumentor().instrument_app(app)


def instrument_sqlalchemy_engine(engine: Any) -> None:
    SQLAlchemyInstrumentor().instrument(engine=engine)


__all__ = [
    "create_tracer_provider",
    "initialise_tracing",
    "instrument_fastapi_app",
    "instrument_sqlalchemy_engine",
]
