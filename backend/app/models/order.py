"""Order and OrderStatusHistory ORM models."""
import enum
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, JSON, Text, ForeignKey, Enum as SAEnum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.product import FulfillmentType


class OrderStatus(str, enum.Enum):
    received = "received"
    preparing = "preparing"
    ready_for_pickup = "ready_for_pickup"
    picked_up = "picked_up"
    not_picked_up = "not_picked_up"
    cancelled = "cancelled"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    # Line-item snapshot, no foreign keys into products
    items = Column(JSON, nullable=False, default=list)
    total = Column(String(32), nullable=False)
    status = Column(SAEnum(OrderStatus), nullable=False, default=OrderStatus.received)
    fulfillment_type = Column(SAEnum(FulfillmentType), nullable=False)
    pickup_point_id = Column(Integer, nullable=True)
    status_changed_at = Column(DateTime(timezone=True), server_default=func.now())
    pickup_deadline = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        order_by="OrderStatusHistory.id",
        cascade="all, delete-orphan",
    )


class OrderStatusHistory(Base):
    """Append-only audit row, one per status change."""

    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    from_status = Column(SAEnum(OrderStatus), nullable=True)
    to_status = Column(SAEnum(OrderStatus), nullable=False)
    actor_id = Column(String(36), nullable=True)
    actor_name = Column(String(150), nullable=True)
    reason = Column(Text, nullable=True)
    # True when the move was off-graph and only accepted because of the override flag
    override_applied = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="history")
