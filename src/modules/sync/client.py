"""HTTP client for the distribution API.

Every mutating call first runs the same pure guard the server applies
(``modules.*.state_machine``), so an illegal transition raises the domain
error locally without a network round-trip.  Anything the backend or the
transport reports is raised as ``BackendError``; requests are never
retried automatically.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

import httpx
import structlog

from modules.core.constants import ActorRole
from modules.deliveries.state_machine import validate_transition as validate_delivery
from modules.orders.constants import PaymentCondition
from modules.orders.exceptions import InvalidOrderAmount
from modules.orders.pricing import OrderTotals, PricedLine, calculate_totals
from modules.orders.state_machine import validate_transition as validate_order
from modules.routes.state_machine import (
    ensure_can_complete,
    ensure_can_deactivate,
    ensure_can_start,
    ensure_editable,
)
from modules.sync import conf
from modules.sync.exceptions import BackendError
from modules.sync.snapshots import (
    DeliverySnapshot,
    OrderSnapshot,
    RouteSnapshot,
    StopSnapshot,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartLine(PricedLine):
    """A priced cart line as sent to the order checkout endpoint."""

    product_id: str = ""

    def as_payload(self) -> Dict[str, Any]:
        payload = {
            "product_id": str(self.product_id),
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }
        if self.final_price is not None:
            payload["final_price"] = str(self.final_price)
        return payload


class DistributionApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or conf.DISTRIBUTION_API_URL).rstrip("/") + "/"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout or conf.DISTRIBUTION_API_TIMEOUT, connect=5.0),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> DistributionApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def get_orders(self, **filters: Any) -> List[OrderSnapshot]:
        data = self._request("GET", "orders/", params=filters)
        return [OrderSnapshot.model_validate(row) for row in _results(data)]

    def get_order(self, order_id: Union[str, UUID]) -> OrderSnapshot:
        return OrderSnapshot.model_validate(self._request("GET", f"orders/{order_id}/"))

    def change_order_status(
        self,
        order: OrderSnapshot,
        status: str,
        actor_role: str,
        notes: str = "",
    ) -> OrderSnapshot:
        """Raises OrderLocked / InvalidTransition locally before any request."""
        target = validate_order(order.status, status)
        data = self._request(
            "PATCH",
            f"orders/{order.id}/",
            json={"status": target.value, "actor_role": str(actor_role), "notes": notes},
        )
        return OrderSnapshot.model_validate(data)

    def create_order_from_cart(
        self,
        client_id: Union[str, UUID],
        payment_condition: str,
        lines: Sequence[CartLine],
        discount_total: Decimal = Decimal("0.00"),
        notes: str = "",
        idempotency_key: Optional[str] = None,
    ) -> OrderSnapshot:
        """Check out a priced cart.

        Amounts are validated locally with the server's pricing rules; the
        returned order carries the authoritative totals.
        """
        self.preview_totals(lines, discount_total)
        payment = PaymentCondition(payment_condition)
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = self._request(
            "POST",
            "orders/",
            json={
                "client_id": str(client_id),
                "payment_condition": payment.value,
                "items": [line.as_payload() for line in lines],
                "discount_total": str(discount_total),
                "notes": notes,
            },
            headers=headers,
        )
        return OrderSnapshot.model_validate(data)

    @staticmethod
    def preview_totals(
        lines: Sequence[CartLine],
        discount_total: Decimal = Decimal("0.00"),
        tax_rate: Decimal = Decimal("0"),
    ) -> OrderTotals:
        if not lines:
            raise InvalidOrderAmount("Order must have at least one item.")
        return calculate_totals(lines, discount_total=discount_total, tax_rate=tax_rate)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def get_routes(self, **filters: Any) -> List[RouteSnapshot]:
        data = self._request("GET", "routes/", params=filters)
        return [RouteSnapshot.model_validate(row) for row in _results(data)]

    def get_route(self, route_id: Union[str, UUID]) -> RouteSnapshot:
        return RouteSnapshot.model_validate(self._request("GET", f"routes/{route_id}/"))

    def start_route(
        self, route: RouteSnapshot, actor_role: str = ActorRole.DRIVER
    ) -> Tuple[RouteSnapshot, List[DeliverySnapshot]]:
        """Raises AlreadyStarted / EmptyRoute locally before any request."""
        ensure_can_start(route.status, route.stop_count)
        data = self._request(
            "POST", f"routes/{route.id}/start/", json={"actor_role": str(actor_role)}
        )
        return (
            RouteSnapshot.model_validate(data["route"]),
            [DeliverySnapshot.model_validate(row) for row in data["deliveries"]],
        )

    def complete_route(
        self,
        route: RouteSnapshot,
        deliveries: Iterable[DeliverySnapshot],
        actor_role: str = ActorRole.DRIVER,
    ) -> RouteSnapshot:
        """Raises RouteLocked / NoDeliveriesGenerated / DeliveriesPending locally."""
        ensure_can_complete(route.status, [delivery.status for delivery in deliveries])
        data = self._request(
            "POST", f"routes/{route.id}/complete/", json={"actor_role": str(actor_role)}
        )
        return RouteSnapshot.model_validate(data)

    def deactivate_route(
        self,
        route: Union[RouteSnapshot, str, UUID],
        reason: str = "",
        actor_role: str = ActorRole.SUPERVISOR,
    ) -> RouteSnapshot:
        """Cancel a route.

        With a snapshot the terminal-state guard runs locally; with a bare
        id the backend is the only judge.
        """
        if isinstance(route, RouteSnapshot):
            ensure_can_deactivate(route.status)
            route_id = route.id
        else:
            route_id = route
        data = self._request(
            "POST",
            f"routes/{route_id}/deactivate/",
            json={"actor_role": str(actor_role), "reason": reason},
        )
        return RouteSnapshot.model_validate(data)

    def prepare_stop(self, route: RouteSnapshot, stop_id: Union[str, UUID]) -> StopSnapshot:
        ensure_editable(route.status)
        data = self._request("POST", f"routes/{route.id}/stops/{stop_id}/prepare/")
        return StopSnapshot.model_validate(data)

    def update_vehicle(
        self, route: RouteSnapshot, vehicle_id: Optional[Union[str, UUID]]
    ) -> RouteSnapshot:
        ensure_editable(route.status)
        data = self._request(
            "PUT",
            f"routes/{route.id}/vehicle/",
            json={"vehicle_id": str(vehicle_id) if vehicle_id else None},
        )
        return RouteSnapshot.model_validate(data)

    # ------------------------------------------------------------------
    # Deliveries
    # ------------------------------------------------------------------

    def get_deliveries(self, route_id: Union[str, UUID]) -> List[DeliverySnapshot]:
        """Deliveries of the route's current start, in visit order."""
        data = self._request("GET", f"routes/{route_id}/deliveries/")
        return [DeliverySnapshot.model_validate(row) for row in data]

    def mark_delivery(
        self,
        delivery: DeliverySnapshot,
        route_status: str,
        status: str,
        evidence: Optional[str] = None,
        reason: Optional[str] = None,
        notes: str = "",
    ) -> DeliverySnapshot:
        """Raises RouteNotActive / DeliveryLocked / InvalidTransition /
        EvidenceRequired / EvidenceTooLong / ReasonRequired locally before any request."""
        target = validate_delivery(
            delivery.status, status, route_status, evidence=evidence, reason=reason
        )
        payload: Dict[str, Any] = {"status": target.value, "notes": notes}
        if evidence:
            payload["evidence"] = evidence
        if reason:
            payload["reason"] = reason
        data = self._request("POST", f"deliveries/{delivery.id}/mark/", json=payload)
        return DeliverySnapshot.model_validate(data)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        request_id = str(uuid.uuid4())
        kwargs["headers"] = {**(kwargs.get("headers") or {}), "X-Request-ID": request_id}
        log = logger.bind(method=method, path=path, request_id=request_id)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("sync.transport_error", error=str(exc))
            raise BackendError(str(exc), code="transport_error") from exc

        if response.is_success:
            log.debug("sync.request_ok", status_code=response.status_code)
            return response.json() if response.content else None

        error = _backend_error(response)
        log.warning("sync.backend_error", status_code=response.status_code, code=error.code)
        raise error


def _results(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict) and "results" in data:
        return data["results"]
    return data or []


def _backend_error(response: httpx.Response) -> BackendError:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and body.get("errors"):
        errors = body["errors"]
        first = errors[0]
        return BackendError(
            str(first.get("detail", response.reason_phrase)),
            status_code=response.status_code,
            code=str(first.get("code", "backend_error")),
            errors=errors,
        )
    return BackendError(
        response.text or response.reason_phrase,
        status_code=response.status_code,
    )
