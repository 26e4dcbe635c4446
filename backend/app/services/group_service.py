"""Group lifecycle engine.

Responsibilities:
- Create groups with the product's quota frozen in
- Admit members atomically: per-group row lock, dedup by phone,
  counter bump and close decision in the same transaction
- Admin overrides: force a group's status, set a member's reserve status

Joins to the same group are serialized by ``SELECT ... FOR UPDATE`` on the
group row. Joins to different groups never wait on each other.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.exceptions import (
    GroupClosed, GroupNotFound, MemberNotFound, ProductNotFound, ProductUnavailable,
)
from app.models.group import Group, GroupStatus, Member, ReserveStatus
from app.models.product import Product, SaleMode
from app.utils.masking import mask_phone

logger = logging.getLogger(__name__)


def _lock_group(db: Session, group_id: int) -> Optional[Group]:
    """Fetch the group row under an exclusive lock, bypassing the identity map."""
    return (
        db.query(Group)
        .filter(Group.id == group_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_product_for_group(db: Session, product_id: int) -> Product:
    """The product a new group would sell; must exist, be active and group-buy."""
    product = db.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if not product.active:
        raise ProductUnavailable(f"Product {product_id} is not active")
    if product.sale_mode != SaleMode.group:
        raise ProductUnavailable(f"Product {product_id} is not sold by group buy")
    return product


def create_group(db: Session, product_id: int, min_people: int) -> Group:
    """Insert an open, empty group for a product."""
    group = Group(
        product_id=product_id,
        min_people=min_people,
        current_people=0,
        status=GroupStatus.open,
    )
    db.add(group)
    db.commit()
    db.refresh(group)
    logger.info("Created group %s for product %s (quota %d)", group.id, product_id, min_people)
    return group


def _find_member(db: Session, group_id: int, phone: str) -> Optional[Member]:
    return (
        db.query(Member)
        .filter(Member.group_id == group_id, Member.phone == phone)
        .first()
    )


def _admit(
    db: Session,
    group: Group,
    name: str,
    phone: str,
    user_id: Optional[str],
    quantity: int,
) -> None:
    """Insert the member and move the counter; caller holds the group lock and commits."""
    db.add(Member(
        group_id=group.id,
        user_id=user_id,
        name=name,
        phone=phone,
        quantity=quantity,
        reserve_status=ReserveStatus.pending,
    ))
    db.flush()

    group.current_people = group.current_people + 1
    group.status = (
        GroupStatus.closed if group.current_people >= group.min_people else GroupStatus.open
    )


def _log_admitted(group: Group, phone: str) -> None:
    logger.info(
        "Member %s joined group %s (%d/%d)",
        mask_phone(phone), group.id, group.current_people, group.min_people,
    )
    if group.status == GroupStatus.closed:
        logger.info("Group %s reached its quota and closed", group.id)


def open_group(
    db: Session,
    product: Product,
    name: str,
    phone: str,
    user_id: Optional[str] = None,
    quantity: int = 1,
) -> Group:
    """Create a group for ``product`` with its first member, in one transaction.

    If the first admit fails nothing is left behind, not even the empty group.
    """
    try:
        group = Group(
            product_id=product.id,
            min_people=product.min_people,
            current_people=0,
            status=GroupStatus.open,
        )
        db.add(group)
        db.flush()
        _admit(db, group, name, phone, user_id, quantity)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(group)
    logger.info("Opened group %s for product %s (quota %d)", group.id, product.id, group.min_people)
    _log_admitted(group, phone)
    return group


def join_group(
    db: Session,
    group_id: int,
    name: str,
    phone: str,
    user_id: Optional[str] = None,
    quantity: int = 1,
) -> Group:
    """Admit one member to a group and close it when the quota is reached.

    A second join with a phone already in the group is a successful no-op.
    The counter moves by one per distinct participant; ``quantity`` is
    stored on the member but never counted towards the quota.

    Raises:
        GroupNotFound: no group with that id.
        GroupClosed: the group no longer accepts members.
    """
    try:
        group = _lock_group(db, group_id)
        if group is None:
            raise GroupNotFound(group_id)
        if group.status != GroupStatus.open:
            raise GroupClosed(group_id)

        if _find_member(db, group_id, phone) is not None:
            db.commit()
            logger.info("Duplicate join for group %s from %s absorbed", group_id, mask_phone(phone))
            db.refresh(group)
            return group

        _admit(db, group, name, phone, user_id, quantity)
        db.commit()
    except IntegrityError:
        db.rollback()
        # Unique (group_id, phone) tripped: the phone got in ahead of this insert
        group = db.get(Group, group_id)
        duplicate = group is not None and (
            db.query(Member.id)
            .filter(Member.group_id == group_id, Member.phone == phone)
            .first()
        ) is not None
        if not duplicate:
            raise
        logger.info("Duplicate join for group %s from %s absorbed", group_id, mask_phone(phone))
        return group
    except Exception:
        db.rollback()
        raise

    db.refresh(group)
    _log_admitted(group, phone)
    return group


def update_group_status(db: Session, group_id: int, status: GroupStatus) -> Optional[Group]:
    """Admin override: write the status without looking at the counter."""
    try:
        group = _lock_group(db, group_id)
        if group is None:
            db.rollback()
            return None
        previous = group.status
        group.status = status
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(group)
    logger.warning(
        "Group %s status forced from %s to %s (%d/%d members)",
        group_id, previous.value, status.value, group.current_people, group.min_people,
    )
    return group


def get_group(db: Session, group_id: int) -> Optional[Group]:
    return (
        db.query(Group)
        .options(joinedload(Group.product))
        .filter(Group.id == group_id)
        .first()
    )


def list_groups(
    db: Session,
    product_id: Optional[int] = None,
    status: Optional[GroupStatus] = None,
) -> list[Group]:
    query = db.query(Group).options(joinedload(Group.product))
    if product_id is not None:
        query = query.filter(Group.product_id == product_id)
    if status is not None:
        query = query.filter(Group.status == status)
    return query.order_by(Group.created_at.desc(), Group.id.desc()).all()


def list_members(db: Session, group_id: int) -> list[Member]:
    return db.query(Member).filter(Member.group_id == group_id).order_by(Member.id).all()


def is_member(db: Session, group_id: int, user_id: str) -> bool:
    return (
        db.query(Member.id)
        .filter(Member.group_id == group_id, Member.user_id == user_id)
        .first()
    ) is not None


def update_member_reserve_status(
    db: Session,
    group_id: int,
    member_id: int,
    reserve_status: ReserveStatus,
) -> Member:
    """Admin-only; touches an existing member row, never the group counter."""
    member = (
        db.query(Member)
        .filter(Member.id == member_id, Member.group_id == group_id)
        .first()
    )
    if member is None:
        raise MemberNotFound(member_id)
    member.reserve_status = reserve_status
    db.commit()
    db.refresh(member)
    logger.info("Member %s in group %s reserve status set to %s", member_id, group_id, reserve_status.value)
    return member
