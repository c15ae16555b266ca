from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider

from blogsub.obs import AuditMiddleware, PrometheusMiddleware, metrics_router
from blogsub.obs.tracing import create_tracer_provider


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_metrics_endpoint_exposes_counters() -> None:
    app = FastAPI()
    app.add_middleware(PrometheusMiddleware)
    app.include_router(metrics_router)

    @app.get("/items/{item_id}")
    def read_item(item_id: str) -> dict[str, str]:
        return {"item_id": item_id}

    client = TestClient(app)
    client.get("/items/TRX-SECRET-1")
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert 'path="/items/{item_id}"' in response.text
    assert "TRX-SECRET-1" not in response.text


def test_audit_middleware_masks_sensitive_fields() -> None:
    audit_logger = logging.getLogger("audit.test")
    handler = _ListHandler()
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)

    app = FastAPI()
    app.add_middleware(AuditMiddleware, logger=audit_logger)

    @app.post("/echo")
    async def echo(request: Request) -> dict[str, object]:
        request.state.actor_id = 12
        return await request.json()

    client = TestClient(app)
    response = client.post(
        "/echo",
        json={"email": "reader@example.com", "password": "hunter22", "sender": "01712345678", "plan": "monthly"},
        headers={"X-Request-ID": "req-1"},
    )

    assert response.status_code == 200
    assert response.json()["plan"] == "monthly"
    assert response.headers["X-Request-ID"] == "req-1"

    record = json.loads(handler.records[-1].getMessage())
    assert record["request_id"] == "req-1"
    assert record["actor_id"] == 12
    assert record["body"]["email"] == "***"
    assert record["body"]["password"] == "***"
    assert record["body"]["sender"] == "***5678"
    assert record["body"]["plan"] == "monthly"
    audit_logger.removeHandler(handler)


def test_tracer_provider_carries_service_name() -> None:
    provider = create_tracer_provider("unit-test-service", endpoint=None)

    assert isinstance(provider, TracerProvider)
    assert provider.resource.attributes["service.name"] == "unit-test-service"
    provider.shutdown()
