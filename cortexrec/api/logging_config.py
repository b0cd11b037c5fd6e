"""Structured JSON logging for the CortexRec service.

Every record is one JSON object. Engine records (training runs, ranking
calls, online updates) carry an ``event`` name and a ``component`` derived
from the logger, so a log pipeline can filter ``event == "online_update"``
without parsing messages. Numeric fields produced by numpy are emitted as
JSON numbers rather than strings.
"""

import json
import logging
import sys
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import numpy as np
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

ROOT_LOGGER_NAME = "cortexrec"
ENGINE_LOGGER_NAME = "cortexrec.recommender"
REQUEST_LOGGER_NAME = "cortexrec.api.requests"
REQUEST_ID_HEADER = "X-Request-ID"

# Emitted ahead of free-form extras, in this order
EVENT_FIELDS = ("event", "request_id", "user_id", "item_id", "method")

# Attributes every LogRecord has; anything else came from ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _component(logger_name: str) -> str:
    """``cortexrec.recommender.service`` -> ``recommender.service``."""
    prefix = ROOT_LOGGER_NAME + "."
    if logger_name.startswith(prefix):
        return logger_name[len(prefix):]
    return logger_name


def _json_default(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        extras = {
            key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS
        }

        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "component": _component(record.name),
            "message": record.getMessage(),
        }
        for field in EVENT_FIELDS:
            if field in extras:
                log_data[field] = extras.pop(field)
        log_data.update(extras)

        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=_json_default)


def setup_logging(log_level: str = "INFO", engine_log_level: Optional[str] = None) -> None:
    """Install the JSON formatter on the root logger.

    Args:
        log_level: Level for the root logger and its stdout handler.
        engine_log_level: Optional separate level for the recommendation
            engine, e.g. ``DEBUG`` to see every online update while the API
            stays at ``INFO``.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    if engine_log_level:
        logging.getLogger(ENGINE_LOGGER_NAME).setLevel(engine_log_level.upper())

    # Request logs come from RequestLoggingMiddleware
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one record per request and propagate a request id.

    A caller-supplied ``X-Request-ID`` is reused so that ids stay stable
    across services; otherwise a new one is generated. The id is also put
    on ``request.state`` for handlers that want to log it.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        start_time = time.perf_counter()
        logger = logging.getLogger(REQUEST_LOGGER_NAME)

        fields: Dict[str, Any] = {
            "event": "http_request",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            fields["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            fields["error_type"] = type(e).__name__
            logger.error("Request failed", extra=fields, exc_info=True)
            raise

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
        if request.query_params:
            fields["query"] = str(request.query_params)

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(level, "Request completed", extra=fields)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
