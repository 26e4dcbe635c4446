"""Pydantic schemas for Products."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.product import SaleMode, FulfillmentType
from app.utils.money import to_string_money


def _money(value):
    return None if value is None else to_string_money(value)


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    image_url: str = ""
    category: str = ""
    original_price: Decimal
    group_price: Decimal
    now_price: Optional[Decimal] = None
    min_people: int = Field(default=1, ge=1)
    stock: int = Field(default=0, ge=0)
    sale_mode: SaleMode = SaleMode.group
    fulfillment_type: FulfillmentType = FulfillmentType.pickup
    active: bool = True

    @field_validator("original_price", "group_price", "now_price")
    @classmethod
    def _not_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("price must not be negative")
        return v

    @model_validator(mode="after")
    def _now_price_for_now_mode(self):
        if self.sale_mode == SaleMode.now and self.now_price is None:
            raise ValueError("now_price is required when sale_mode is 'now'")
        return self

    def to_columns(self) -> dict:
        data = self.model_dump()
        for key in ("original_price", "group_price", "now_price"):
            data[key] = _money(data[key])
        return data


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    original_price: Optional[Decimal] = None
    group_price: Optional[Decimal] = None
    now_price: Optional[Decimal] = None
    min_people: Optional[int] = Field(default=None, ge=1)
    stock: Optional[int] = Field(default=None, ge=0)
    sale_mode: Optional[SaleMode] = None
    fulfillment_type: Optional[FulfillmentType] = None
    active: Optional[bool] = None

    @field_validator("original_price", "group_price", "now_price")
    @classmethod
    def _not_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("price must not be negative")
        return v

    def to_columns(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        for key in ("original_price", "group_price", "now_price"):
            if key in data:
                data[key] = _money(data[key])
        return data


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    image_url: str
    category: str
    original_price: str
    group_price: str
    now_price: Optional[str] = None
    min_people: int
    stock: int
    sale_mode: SaleMode
    fulfillment_type: FulfillmentType
    active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
