"""Domain error hierarchy.

Every lifecycle authority raises subclasses of ``DomainError``.  The
category decides how the API layer renders the error:

- ``InvariantViolation``: illegal transition or locked entity (409).
- ``EligibilityGap``: an action that is not yet allowed, e.g. completing a
  route with pending deliveries (409).
- ``DomainValidationError``: missing or malformed business input (400).
- ``NotFound``: the referenced entity does not exist (404).

This module never touches Django settings, so the API client can raise the
same errors locally.
"""

from __future__ import annotations

from typing import Any

from rest_framework import status


class DomainError(Exception):
    """Base class for business rule violations."""

    code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.context = context

    @property
    def detail(self) -> str:
        return str(self)


class InvariantViolation(DomainError):
    """A lifecycle invariant would be broken."""

    code = "invariant_violation"
    status_code = status.HTTP_409_CONFLICT


class EligibilityGap(DomainError):
    """The action is not allowed yet in the current state."""

    code = "not_eligible"
    status_code = status.HTTP_409_CONFLICT


class DomainValidationError(DomainError):
    """Business input is missing or malformed."""

    code = "invalid"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(DomainError):
    """The requested entity does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransition(InvariantViolation):
    """The target status is not reachable from the current status."""

    code = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot transition {entity} from {current} to {target}.",
            current_status=str(current),
            target_status=str(target),
        )
