"""Delivery model.

One delivery is generated per stop each time its route starts.  Rows are
never deleted: a route reset or restart produces a new ``generation``
instead.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel
from modules.deliveries.constants import (
    EVIDENCE_REF_MAX_LENGTH,
    DeliveryStatus,
    FailureReason,
)
from shared.domain.events import DomainEventMixin


class Delivery(DomainEventMixin, BaseModel):
    route: models.ForeignKey = models.ForeignKey(
        "routes.Route",
        on_delete=models.PROTECT,
        related_name="deliveries",
    )
    stop: models.ForeignKey = models.ForeignKey(
        "routes.Stop",
        on_delete=models.PROTECT,
        related_name="deliveries",
    )
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="deliveries",
        null=True,
        blank=True,
    )
    generation: models.PositiveIntegerField = models.PositiveIntegerField()
    position: models.PositiveIntegerField = models.PositiveIntegerField()
    status: models.CharField = models.CharField(
        max_length=12,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    window_start: models.DateTimeField = models.DateTimeField()
    window_end: models.DateTimeField = models.DateTimeField()
    item_count: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    evidence_ref: models.CharField = models.CharField(
        max_length=EVIDENCE_REF_MAX_LENGTH, blank=True, default=""
    )
    failure_reason: models.CharField = models.CharField(
        max_length=30, choices=FailureReason.choices, blank=True, default=""
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    in_transit_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    resolved_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "deliveries"
        ordering = ["route", "generation", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["stop", "generation"],
                name="deliveries_unique_stop_generation",
            ),
        ]
        indexes = [
            models.Index(
                fields=["route", "generation", "status"],
                name="deliveries_route_gen_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Delivery #{self.position} of {self.route_id} ({self.status})"
