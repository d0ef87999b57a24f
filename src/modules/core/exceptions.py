"""DRF exception handler.

All errors, domain and DRF ones alike, are rendered with the same
envelope::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from shared.domain.exceptions import (
    DomainError,
    DomainValidationError,
    EligibilityGap,
    InvalidTransition,
    InvariantViolation,
    NotFound,
)

__all__ = [
    "DomainError",
    "DomainValidationError",
    "EligibilityGap",
    "InvalidTransition",
    "InvariantViolation",
    "NotFound",
    "standard_exception_handler",
]

logger = structlog.get_logger(__name__)


def standard_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    """Render domain and DRF errors with a single envelope."""
    if isinstance(exc, DomainError):
        log = logger.bind(error_code=exc.code, error=str(exc))
        if exc.status_code >= 500:
            log.error("api.domain_error")
        else:
            log.info("api.domain_error")
        entry: Dict[str, Any] = {"code": exc.code, "detail": exc.detail, "attr": None}
        if exc.context:
            entry["meta"] = exc.context
        return Response(
            {"type": _error_type(exc.status_code), "errors": [entry]},
            status=exc.status_code,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.APIException):
        errors = _flatten(exc.get_full_details())
    else:
        errors = [{"code": "error", "detail": str(exc), "attr": None}]

    error_type = (
        "validation_error"
        if isinstance(exc, drf_exceptions.ValidationError)
        else _error_type(response.status_code)
    )
    response.data = {"type": error_type, "errors": errors}
    return response


def _error_type(status_code: int) -> str:
    return "server_error" if status_code >= 500 else "client_error"


def _flatten(details: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(details, dict) and "message" in details and "code" in details:
        return [{"code": details["code"], "detail": str(details["message"]), "attr": attr}]
    if isinstance(details, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in details.items():
            nested = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                nested = attr
            errors.extend(_flatten(value, nested))
        return errors
    if isinstance(details, list):
        errors = []
        for index, value in enumerate(details):
            nested = attr
            if isinstance(value, dict) and not ("message" in value and "code" in value):
                nested = f"{attr}.{index}" if attr else str(index)
            errors.extend(_flatten(value, nested))
        return errors
    return [{"code": "error", "detail": str(details), "attr": attr}]
