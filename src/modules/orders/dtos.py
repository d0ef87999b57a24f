"""Order DTOs for the Service Layer.

Framework-agnostic input contracts between the API layer (DRF
serializers) and ``OrderService``.  DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import PaymentCondition


class CartLineDTO(BaseModel):
    """A priced cart line.

    ``unit_price`` is the catalog price and ``final_price`` the price after
    line promotions; when omitted the line is charged at ``unit_price``.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    final_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests."""

    model_config = ConfigDict(frozen=True)

    client_id: UUID
    payment_condition: PaymentCondition = PaymentCondition.CASH
    items: List[CartLineDTO]
    discount_total: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    notes: Optional[str] = ""
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CartLineDTO]) -> List[CartLineDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self
