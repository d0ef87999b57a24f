"""Route, Stop and RouteStatusHistory models.

- A route starts ``publicado`` and may only have its stops edited in that
  state.
- ``generation`` counts successful starts; deliveries are tagged with the
  generation that produced them so a reset never mixes records.
- ``Stop.position`` is the operator-chosen visit position; ties are broken
  by ``insertion_index``, assigned when the stop is added.
"""

from __future__ import annotations

from typing import List

from django.conf import settings
from django.db import models

from modules.core.constants import ActorRole
from modules.core.models import BaseModel, SoftDeleteModel
from modules.routes.constants import DayOfWeek, Frequency, RouteStatus
from modules.routes.state_machine import order_stops
from shared.domain.events import DomainEventMixin


class Route(DomainEventMixin, SoftDeleteModel):
    """Route aggregate root (the driver's "rutero")."""

    name: models.CharField = models.CharField(max_length=120, blank=True, default="")
    zone_id: models.PositiveIntegerField = models.PositiveIntegerField(db_index=True)
    driver_id: models.UUIDField = models.UUIDField(null=True, blank=True, db_index=True)
    vehicle_id: models.UUIDField = models.UUIDField(null=True, blank=True)
    scheduled_date: models.DateField = models.DateField(null=True, blank=True)
    frequency: models.CharField = models.CharField(
        max_length=10, choices=Frequency.choices, default=Frequency.WEEKLY
    )
    day_of_week: models.CharField = models.CharField(
        max_length=10, choices=DayOfWeek.choices, blank=True, default=""
    )
    status: models.CharField = models.CharField(
        max_length=12,
        choices=RouteStatus.choices,
        default=RouteStatus.PUBLISHED,
    )
    generation: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    started_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    completed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancelled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancel_reason: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "routes"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="routes_status_idx"),
            models.Index(fields=["scheduled_date"], name="routes_scheduled_idx"),
        ]

    @property
    def ordered_stops(self) -> List[Stop]:
        return order_stops(self.stops.all())

    @property
    def stop_count(self) -> int:
        return len(self.stops.all())

    def __str__(self) -> str:
        return f"Route {self.id} ({self.status})"


class Stop(BaseModel):
    """A visit in a route, referencing a client and optionally an order."""

    route: models.ForeignKey = models.ForeignKey(
        "routes.Route",
        on_delete=models.CASCADE,
        related_name="stops",
    )
    client_id: models.UUIDField = models.UUIDField()
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="stops",
        null=True,
        blank=True,
    )
    position: models.PositiveIntegerField = models.PositiveIntegerField()
    insertion_index: models.PositiveIntegerField = models.PositiveIntegerField(
        editable=False
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    prepared_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    prepared_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "route_stops"
        ordering = ["position", "insertion_index"]
        constraints = [
            models.UniqueConstraint(
                fields=["route", "insertion_index"],
                name="route_stops_unique_insertion",
            ),
        ]

    def __str__(self) -> str:
        return f"Stop #{self.position} of {self.route_id}"


class RouteStatusHistory(BaseModel):
    """Append-only audit trail for route status changes."""

    route: models.ForeignKey = models.ForeignKey(
        "routes.Route",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=12,
        choices=RouteStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=12,
        choices=RouteStatus.choices,
    )
    actor_role: models.CharField = models.CharField(
        max_length=20,
        choices=ActorRole.choices,
        default=ActorRole.SYSTEM,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "route_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["route", "-created_at"],
                name="rsh_route_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.route_id} : {self.old_status} -> {self.new_status}"
