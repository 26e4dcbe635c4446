"""Pydantic schemas for Users."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    phone: Optional[str] = Field(default=None, max_length=32)


class UserOut(BaseModel):
    user_id: str
    name: str
    phone: Optional[str] = None
    is_admin: bool
    created_at: datetime

    model_config = {"from_attributes": True}
