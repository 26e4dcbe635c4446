"""Order workflow settings: the transition table and pickup policy."""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from app.models.order import OrderStatus


class StockPolicy(str, Enum):
    hold = "hold"
    release = "release"


class OrderSettingsData(BaseModel):
    transitions: dict[OrderStatus, list[OrderStatus]]
    admin_override: bool = False
    pickup_window_hours: int = Field(ge=0)
    pickup_tolerance_hours: int = Field(ge=0)
    overdue_auto_mark: bool = False
    overdue_stock_policy: StockPolicy = StockPolicy.hold

    def allowed_targets(self, status: OrderStatus) -> list[OrderStatus]:
        return self.transitions.get(status, [])

    def terminal_statuses(self) -> set[OrderStatus]:
        return {s for s in OrderStatus if not self.allowed_targets(s)}


class OrderSettingsUpdate(BaseModel):
    """Partial update; only the fields sent are stored.

    The transition table is taken as plain strings so unknown status names
    can be reported with a specific message instead of a generic enum error.
    """

    transitions: Optional[dict[str, list[str]]] = None
    admin_override: Optional[bool] = None
    pickup_window_hours: Optional[int] = Field(default=None, ge=0)
    pickup_tolerance_hours: Optional[int] = Field(default=None, ge=0)
    overdue_auto_mark: Optional[bool] = None
    overdue_stock_policy: Optional[StockPolicy] = None
