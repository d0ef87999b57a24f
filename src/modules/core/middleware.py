import time
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger()

# Drivers' handsets send X-Request-ID; back-office tools send X-Correlation-ID.
CORRELATION_HEADERS = ("HTTP_X_REQUEST_ID", "HTTP_X_CORRELATION_ID")
MAX_CORRELATION_ID_LENGTH = 128


def incoming_correlation_id(request: HttpRequest) -> Optional[str]:
    for header in CORRELATION_HEADERS:
        value = request.META.get(header, "").strip()
        if value:
            return value[:MAX_CORRELATION_ID_LENGTH]
    return None


class CorrelationIdMiddleware:
    """Bind a correlation ID to every log line of a request.

    The ID is taken from the first correlation header present (a UUID4
    when none is) and echoed back as ``X-Request-ID``.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = incoming_correlation_id(request) or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)
        log = logger.bind(method=request.method, path=request.get_full_path())
        log.info("request_started")

        start = time.monotonic()
        response = self.get_response(request)
        duration_ms = round((time.monotonic() - start) * 1000, 2)

        if response.status_code >= 500:
            log.error("request_finished", status_code=response.status_code, duration_ms=duration_ms)
        else:
            log.info("request_finished", status_code=response.status_code, duration_ms=duration_ms)

        response["X-Request-ID"] = cid
        return response
