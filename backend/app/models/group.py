"""Group and Member ORM models."""
import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class GroupStatus(str, enum.Enum):
    open = "open"
    closed = "closed"


class ReserveStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    none = "none"


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    current_people = Column(Integer, nullable=False, default=0)
    # Frozen at creation; later product edits do not move the quota
    min_people = Column(Integer, nullable=False)
    status = Column(SAEnum(GroupStatus), nullable=False, default=GroupStatus.open)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="groups")
    members = relationship("Member", back_populates="group", cascade="all, delete-orphan")


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("group_id", "phone", name="uq_members_group_phone"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    name = Column(String(150), nullable=False)
    phone = Column(String(32), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    reserve_status = Column(SAEnum(ReserveStatus), nullable=False, default=ReserveStatus.pending)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("Group", back_populates="members")
