"""Pydantic schemas for Groups and Members."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.group import GroupStatus, ReserveStatus
from app.schemas.product import ProductOut


class GroupCreate(BaseModel):
    product_id: Optional[int] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    quantity: int = Field(default=1, ge=1)


class GroupJoin(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    quantity: int = Field(default=1, ge=1)


class GroupStatusUpdate(BaseModel):
    status: GroupStatus


class GroupOut(BaseModel):
    id: int
    product_id: int
    current_people: int
    min_people: int
    status: GroupStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GroupDetailOut(GroupOut):
    product: Optional[ProductOut] = None


class MemberOut(BaseModel):
    id: int
    group_id: int
    user_id: Optional[str] = None
    name: str
    phone: str
    quantity: int
    reserve_status: ReserveStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReserveStatusUpdate(BaseModel):
    reserve_status: ReserveStatus
