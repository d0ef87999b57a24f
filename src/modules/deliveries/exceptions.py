"""Delivery domain exceptions."""

from __future__ import annotations

from shared.domain.exceptions import (
    DomainValidationError,
    InvalidTransition,
    InvariantViolation,
    NotFound,
)

__all__ = [
    "DeliveryLocked",
    "DeliveryNotFound",
    "EvidenceRequired",
    "EvidenceTooLong",
    "InvalidFailureReason",
    "InvalidTransition",
    "ReasonRequired",
    "RouteNotActive",
]


class DeliveryNotFound(NotFound):
    code = "delivery_not_found"


class RouteNotActive(InvariantViolation):
    """The owning route is not in progress."""

    code = "route_not_active"


class DeliveryLocked(InvariantViolation):
    """The delivery is already resolved."""

    code = "delivery_locked"


class EvidenceRequired(DomainValidationError):
    """A delivered mark needs a signature or photo reference."""

    code = "evidence_required"


class EvidenceTooLong(DomainValidationError):
    code = "evidence_too_long"


class ReasonRequired(DomainValidationError):
    """A failed mark needs a reason code."""

    code = "reason_required"


class InvalidFailureReason(DomainValidationError):
    code = "invalid_failure_reason"
