"""Read-only snapshots of backend resources.

Each snapshot is the client's copy of the server state at fetch time and
is replaced wholesale on the next fetch.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class OrderItemSnapshot(Snapshot):
    product_id: UUID
    quantity: int
    unit_price: Decimal
    final_price: Decimal
    subtotal: Decimal


class OrderSnapshot(Snapshot):
    id: UUID
    order_number: str
    client_id: UUID
    status: str
    payment_condition: Optional[str] = None
    total: Decimal
    subtotal: Optional[Decimal] = None
    discount_total: Optional[Decimal] = None
    tax_total: Optional[Decimal] = None
    items: List[OrderItemSnapshot] = Field(default_factory=list)


class StopSnapshot(Snapshot):
    id: UUID
    client_id: UUID
    order: Optional[UUID] = None
    position: int
    insertion_index: int
    prepared_at: Optional[datetime] = None


class RouteSnapshot(Snapshot):
    id: UUID
    status: str
    generation: int = 0
    zone_id: Optional[int] = None
    driver_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    scheduled_date: Optional[date] = None
    stop_count: int = 0
    stops: List[StopSnapshot] = Field(default_factory=list)


class DeliverySnapshot(Snapshot):
    id: UUID
    route: UUID
    stop: UUID
    order: Optional[UUID] = None
    generation: int
    position: int
    status: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    item_count: int = 0
    failure_reason: str = ""
