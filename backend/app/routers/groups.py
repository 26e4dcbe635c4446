"""Group-buy API routes, delegating to group_service for join semantics."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_admin
from app.exceptions import GroupNotFound
from app.models.group import GroupStatus
from app.models.user import User
from app.schemas.group import (
    GroupCreate, GroupJoin, GroupStatusUpdate, GroupOut, GroupDetailOut,
    MemberOut, ReserveStatusUpdate,
)
from app.services import group_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _member_identity(payload, user: User) -> tuple[str, str]:
    """Name and phone for a join, falling back to the caller's profile."""
    name = (payload.name or user.name or "").strip()
    phone = (payload.phone or user.phone or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    if not phone:
        raise HTTPException(status_code=400, detail="phone is required")
    return name, phone


@router.get("/", response_model=list[GroupDetailOut])
def list_groups(
    product_id: Optional[int] = Query(None),
    status_filter: Optional[GroupStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    """List groups with their product, newest first, optionally by product and status."""
    return group_service.list_groups(db, product_id=product_id, status=status_filter)


@router.get("/{group_id}", response_model=GroupDetailOut)
def get_group(group_id: int, db: Session = Depends(get_db)):
    group = group_service.get_group(db, group_id)
    if not group:
        raise GroupNotFound(group_id)
    return group


@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: GroupCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Open a new group for a product with the caller as its first member."""
    if not payload.product_id:
        raise HTTPException(status_code=400, detail="product_id is required")
    name, phone = _member_identity(payload, user)

    product = group_service.get_product_for_group(db, payload.product_id)
    return group_service.open_group(
        db,
        product,
        name=name,
        phone=phone,
        user_id=user.user_id,
        quantity=payload.quantity,
    )


@router.post("/{group_id}/join", response_model=GroupOut)
def join_group(
    group_id: int,
    payload: GroupJoin,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Join an open group. Repeating a join with the same phone changes nothing."""
    name, phone = _member_identity(payload, user)
    return group_service.join_group(
        db,
        group_id,
        name=name,
        phone=phone,
        user_id=user.user_id,
        quantity=payload.quantity,
    )


@router.patch("/{group_id}/status", response_model=GroupOut)
def update_group_status(
    group_id: int,
    payload: GroupStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Force a group open or closed regardless of its member count."""
    group = group_service.update_group_status(db, group_id, payload.status)
    if group is None:
        raise GroupNotFound(group_id)
    logger.info("Admin %s set group %s to %s", admin.user_id, group_id, payload.status.value)
    return group


@router.get("/{group_id}/members", response_model=list[MemberOut])
def list_members(
    group_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Members of a group; visible to its members and to admins."""
    if group_service.get_group(db, group_id) is None:
        raise GroupNotFound(group_id)
    if not user.is_admin and not group_service.is_member(db, group_id, user.user_id):
        raise HTTPException(status_code=403, detail="Only members of this group can see its members")
    return group_service.list_members(db, group_id)


@router.patch("/{group_id}/members/{member_id}/reserve-status", response_model=MemberOut)
def update_reserve_status(
    group_id: int,
    member_id: int,
    payload: ReserveStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return group_service.update_member_reserve_status(db, group_id, member_id, payload.reserve_status)
