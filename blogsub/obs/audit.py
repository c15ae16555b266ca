"""Request audit logging middleware."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

_SENSITIVE_KEYS = {
    "email",
    "password",
    "refresh_token",
    "access_token",
    "sender",
    "phone",
    "phone_number",
}


def _mask_value(value: Any) -> Any:
    if isinstance(value, dict):
        return _mask_mapping(value)
    if isinstance(value, list):
        return [_mask_value(item) for item in value]
    if isinstance(value, str) and "@" in value:
        name, _, domain = value.partition("@")
        hidden = name[0] + "***" if name else "***"
        return f"{hidden}@{domain}" if domain else "***@***"
    return value


def _mask_mapping(mapping: dict[str, Any]) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in mapping.items():
        if key.lower() in _SENSITIVE_KEYS:
            if isinstance(value, str) and len(value) > 4 and key.lower() in {"sender", "phone", "phone_number"}:
                sanitized[key] = f"***{value[-4:]}"
            else:
                sanitized[key] = "***"
        else:
            sanitized[key] = _mask_value(value)
    return sanitized


@dataclass(slots=True)
class AuditLogRecord:
    """Structured log entry emitted once per request."""

    timestamp: str
    request_id: str
    method: str
    path: str
    status: int
    duration_ms: float
    actor_id: int | None
    ip_address: str | None
    query: dict[str, Any]
    body: Any

    def to_json(self) -> str:
        payload = asdict(self)
        payload["duration_ms"] = round(self.duration_ms, 2)
        return json.dumps(payload, default=str)


class AuditMiddleware(BaseHTTPMiddleware):
    """Log a masked JSON trail of every request to the ``audit`` logger."""

    def __init__(self, app: ASGIApp, *, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self._logger = logger or logging.getLogger("audit")

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()

        body_bytes = await request.body()
        self._set_body(request, body_bytes)

        masked_body = None
        if body_bytes:
            try:
                masked_body = _mask_value(json.loads(body_bytes))
            except (json.JSONDecodeError, UnicodeDecodeError):
                masked_body = "<binary>"

        response = await call_next(request)

        record = AuditLogRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
            actor_id=getattr(request.state, "actor_id", None),
            ip_address=request.client.host if request.client else None,
            query=_mask_mapping(dict(request.query_params.multi_items())),
            body=masked_body,
        )
        self._logger.info(record.to_json())

        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _set_body(request: Request, body: bytes) -> None:
        async def receive() -> dict[str, Any]:
            nonlocal consumed
            if consumed:
                return {"type": "http.request", "body": b"", "more_body": False}
            consumed = True
            return {"type": "http.request", "body": body, "more_body": False}

        consumed = False
        request._receive = receive  # type: ignore[attr-defined]


__all__ = ["AuditLogRecord", "AuditMiddleware"]
