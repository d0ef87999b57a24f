"""Route DTOs for the Service Layer."""

from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modules.routes.constants import DayOfWeek, Frequency


class StopDTO(BaseModel):
    """A stop to add to a route.

    ``client_id`` may be omitted when ``order_id`` is given; it is then
    taken from the order.  Without ``position`` the stop goes last.
    """

    model_config = ConfigDict(frozen=True)

    client_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    position: Optional[int] = Field(default=None, ge=1)
    notes: str = ""

    @model_validator(mode="after")
    def client_or_order(self):
        if self.client_id is None and self.order_id is None:
            raise ValueError("A stop needs a client_id or an order_id.")
        return self


class CreateRouteDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    zone_id: int = Field(ge=1)
    driver_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    scheduled_date: Optional[date] = None
    frequency: Frequency = Frequency.WEEKLY
    day_of_week: Optional[DayOfWeek] = None
    stops: List[StopDTO] = Field(default_factory=list)
