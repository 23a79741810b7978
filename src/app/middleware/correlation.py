import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from uuid import uuid4

from fastapi import Request

from app.config import settings

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

_CORRELATION_HEADERS = ("X-Correlation-Id", "X-Correlation-ID")
_STANDARD_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "correlation_id"}


def resolve_correlation_id(request: Request) -> str:
    for header in _CORRELATION_HEADERS:
        incoming = request.headers.get(header)
        if incoming:
            return incoming
    return f"corr_{uuid4().hex[:12]}"


def propagation_headers(correlation_id: str) -> dict[str, str]:
    headers = {"X-Correlation-Id": correlation_id} if correlation_id else {}
    headers["X-Request-Id"] = f"req_{uuid4().hex[:12]}"
    return headers


async def correlation_middleware(request: Request, call_next):
    correlation_id = resolve_correlation_id(request)
    token = correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers["X-Correlation-Id"] = correlation_id
    return response


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields are carried as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging() -> None:
    root = logging.getLogger()
    if any(getattr(handler, "_proposal_api", False) for handler in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler._proposal_api = True  # type: ignore[attr-defined]
    handler.addFilter(CorrelationIdFilter())
    if settings.log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"
            )
        )
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())
