"""Pydantic schemas for Orders and their status history."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.order import OrderStatus
from app.models.product import FulfillmentType


class OrderItemIn(BaseModel):
    """One cart line as the client holds it."""

    product_id: int
    name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal
    sale_mode: Optional[str] = None
    group_id: Optional[int] = None

    @field_validator("unit_price")
    @classmethod
    def _not_negative(cls, v):
        if v < 0:
            raise ValueError("unit_price must not be negative")
        return v


class OrderCreate(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)
    fulfillment_type: FulfillmentType
    pickup_point_id: Optional[int] = None

    @model_validator(mode="after")
    def _pickup_point_iff_pickup(self):
        if self.fulfillment_type == FulfillmentType.pickup and self.pickup_point_id is None:
            raise ValueError("pickup_point_id is required for pickup orders")
        if self.fulfillment_type == FulfillmentType.delivery and self.pickup_point_id is not None:
            raise ValueError("pickup_point_id is only allowed for pickup orders")
        return self


class OrderStatusChange(BaseModel):
    status: OrderStatus
    reason: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    user_id: str
    items: list[dict[str, Any]]
    total: str
    status: OrderStatus
    fulfillment_type: FulfillmentType
    pickup_point_id: Optional[int] = None
    status_changed_at: Optional[datetime] = None
    pickup_deadline: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderStatusHistoryOut(BaseModel):
    id: int
    order_id: int
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    reason: Optional[str] = None
    override_applied: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
