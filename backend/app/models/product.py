"""Product ORM model. Prices are exact decimal strings."""
import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class SaleMode(str, enum.Enum):
    group = "group"
    now = "now"


class FulfillmentType(str, enum.Enum):
    pickup = "pickup"
    delivery = "delivery"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(500), nullable=False, default="")
    category = Column(String(100), nullable=False, default="")
    original_price = Column(String(32), nullable=False)
    group_price = Column(String(32), nullable=False)
    now_price = Column(String(32), nullable=True)
    min_people = Column(Integer, nullable=False, default=1)
    stock = Column(Integer, nullable=False, default=0)
    sale_mode = Column(SAEnum(SaleMode), nullable=False, default=SaleMode.group)
    fulfillment_type = Column(SAEnum(FulfillmentType), nullable=False, default=FulfillmentType.pickup)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # No cascade: groups keep a bare foreign key and outlive edits to the product
    groups = relationship("Group", back_populates="product")
