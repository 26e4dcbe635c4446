"""Order status workflow engine.

Responsibilities:
- Checkout: turn cart lines into an order snapshot with an exact total
- Status changes checked against the live transition table, with the
  admin override as the only way around it
- One history row per status change, override-forced moves included
- Overdue pickups as a pull-based query, plus an admin-triggered sweep
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.exceptions import InvalidTransition, OrderNotFound
from app.models.order import Order, OrderStatus, OrderStatusHistory
from app.models.product import FulfillmentType
from app.models.user import User
from app.schemas.order import OrderItemIn
from app.services import settings_service
from app.utils.money import D, round_money, to_string_money

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _item_snapshot(item: OrderItemIn) -> dict:
    unit_price = round_money(item.unit_price)
    return {
        "product_id": item.product_id,
        "name": item.name,
        "quantity": item.quantity,
        "unit_price": str(unit_price),
        "line_total": to_string_money(unit_price * item.quantity),
        "sale_mode": item.sale_mode,
        "group_id": item.group_id,
    }


def create_order(
    db: Session,
    user: User,
    items: list[OrderItemIn],
    fulfillment_type: FulfillmentType,
    pickup_point_id: Optional[int] = None,
) -> Order:
    """Create an order in ``received`` from the client's cart lines."""
    snapshot = [_item_snapshot(item) for item in items]
    total = sum((D(line["line_total"]) for line in snapshot), D("0"))

    order = Order(
        user_id=user.user_id,
        items=snapshot,
        total=to_string_money(total),
        status=OrderStatus.received,
        fulfillment_type=fulfillment_type,
        pickup_point_id=pickup_point_id,
        status_changed_at=_now(),
    )
    db.add(order)
    db.flush()
    db.add(OrderStatusHistory(
        order_id=order.id,
        from_status=None,
        to_status=OrderStatus.received,
        actor_id=user.user_id,
        actor_name=user.name,
        reason="Order placed",
        override_applied=False,
    ))
    db.commit()
    db.refresh(order)
    logger.info("Order %s placed by user %s (%d items, total %s)", order.id, user.user_id, len(snapshot), order.total)
    return order


def change_order_status(
    db: Session,
    order_id: int,
    new_status: OrderStatus,
    actor_id: Optional[str],
    actor_name: Optional[str],
    reason: Optional[str] = None,
) -> Order:
    """Move an order to ``new_status`` and append a history row.

    With ``admin_override`` off, the target must be listed for the order's
    current status in the live transition table. With it on, any target is
    accepted and the history row is flagged ``override_applied`` whenever
    the table would have refused the move.

    Raises:
        OrderNotFound: no order with that id.
        InvalidTransition: the table forbids the move and override is off.
    """
    try:
        order = (
            db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if order is None:
            raise OrderNotFound(order_id)

        config = settings_service.load_order_settings(db)
        current = order.status
        on_graph = new_status in config.allowed_targets(current)
        if not on_graph and not config.admin_override:
            raise InvalidTransition(current.value, new_status.value)

        now = _now()
        order.status = new_status
        order.status_changed_at = now
        if new_status == OrderStatus.ready_for_pickup:
            order.pickup_deadline = now + timedelta(hours=config.pickup_window_hours)

        db.add(OrderStatusHistory(
            order_id=order.id,
            from_status=current,
            to_status=new_status,
            actor_id=actor_id,
            actor_name=actor_name,
            reason=reason,
            override_applied=not on_graph,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    if on_graph:
        logger.info("Order %s status %s -> %s by %s", order_id, current.value, new_status.value, actor_id)
    else:
        logger.warning(
            "Order %s status %s -> %s forced by override (actor %s)",
            order_id, current.value, new_status.value, actor_id,
        )
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    return order


def list_orders(db: Session, user_id: Optional[str] = None) -> list[Order]:
    query = db.query(Order)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_history(db: Session, order_id: int) -> list[OrderStatusHistory]:
    return (
        db.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.id)
        .all()
    )


def get_overdue_orders(db: Session) -> list[Order]:
    """Orders past pickup deadline plus tolerance that are still in a non-terminal status."""
    config = settings_service.load_order_settings(db)
    cutoff = _now() - timedelta(hours=config.pickup_tolerance_hours)
    terminal = config.terminal_statuses()
    query = db.query(Order).filter(
        Order.pickup_deadline.isnot(None),
        Order.pickup_deadline < cutoff,
    )
    if terminal:
        query = query.filter(Order.status.notin_(sorted(terminal)))
    return query.order_by(Order.pickup_deadline).all()


def mark_overdue_orders(db: Session, actor: User) -> list[Order]:
    """Move overdue orders to ``not_picked_up`` when the auto-mark policy is on."""
    config = settings_service.load_order_settings(db)
    if not config.overdue_auto_mark:
        logger.info("Overdue auto-mark is disabled; nothing to do")
        return []

    candidates = [o.id for o in get_overdue_orders(db) if o.status != OrderStatus.not_picked_up]
    changed = []
    for order_id in candidates:
        try:
            changed.append(change_order_status(
                db,
                order_id,
                OrderStatus.not_picked_up,
                actor_id=actor.user_id,
                actor_name=actor.name,
                reason="Pickup deadline passed",
            ))
        except InvalidTransition as exc:
            logger.info("Skipping overdue order %s: %s", order_id, exc.message)
    logger.info(
        "Marked %d overdue orders as not picked up (stock policy: %s)",
        len(changed), config.overdue_stock_policy.value,
    )
    return changed
