"""Pure delivery transition rules (no ORM access)."""

from __future__ import annotations

from typing import Optional

from modules.deliveries.constants import (
    EVIDENCE_REF_MAX_LENGTH,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DeliveryStatus,
    FailureReason,
)
from modules.deliveries.exceptions import (
    DeliveryLocked,
    EvidenceRequired,
    EvidenceTooLong,
    InvalidFailureReason,
    InvalidTransition,
    ReasonRequired,
    RouteNotActive,
)
from modules.routes.constants import RouteStatus


def validate_transition(
    current: str,
    target: str,
    route_status: str,
    evidence: Optional[str] = None,
    reason: Optional[str] = None,
) -> DeliveryStatus:
    """Check a driver-initiated delivery mark.

    Checks run in a fixed order so the first broken rule is reported:
    route activity, delivery lock, transition legality, then the payload
    required by the target status.
    """
    if route_status != RouteStatus.IN_PROGRESS:
        raise RouteNotActive(
            f"Deliveries can only be marked while the route is {RouteStatus.IN_PROGRESS}.",
            route_status=str(route_status),
        )
    if current in TERMINAL_STATES:
        raise DeliveryLocked(f"Delivery in status {current} cannot be changed.")

    try:
        target_status = DeliveryStatus(target)
    except ValueError:
        raise InvalidTransition("delivery", current, target) from None
    if target_status not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransition("delivery", current, target_status)

    if target_status == DeliveryStatus.DELIVERED:
        evidence = (evidence or "").strip()
        if not evidence:
            raise EvidenceRequired()
        if len(evidence) > EVIDENCE_REF_MAX_LENGTH:
            raise EvidenceTooLong(
                f"Evidence reference exceeds {EVIDENCE_REF_MAX_LENGTH} characters.",
                max_length=EVIDENCE_REF_MAX_LENGTH,
            )
    if target_status == DeliveryStatus.FAILED:
        if not (reason or "").strip():
            raise ReasonRequired()
        if reason not in FailureReason.values:
            raise InvalidFailureReason(
                f"Unknown failure reason {reason!r}.", allowed=FailureReason.values
            )
    return target_status
