"""Order API routes: checkout, status workflow, history."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_admin
from app.models.order import Order
from app.models.user import User
from app.schemas.order import OrderCreate, OrderOut, OrderStatusChange, OrderStatusHistoryOut
from app.services import order_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_owner(order: Order, user: User) -> None:
    if not user.is_admin and order.user_id != user.user_id:
        raise HTTPException(status_code=403, detail="Not allowed to view this order")


@router.post("/", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Checkout: the client's cart lines become an order in ``received``."""
    return order_service.create_order(
        db,
        user,
        items=payload.items,
        fulfillment_type=payload.fulfillment_type,
        pickup_point_id=payload.pickup_point_id,
    )


@router.get("/", response_model=list[OrderOut])
def list_orders(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """The caller's orders; admins see every order."""
    return order_service.list_orders(db, user_id=None if user.is_admin else user.user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    order = order_service.get_order(db, order_id)
    _check_owner(order, user)
    return order


@router.patch("/{order_id}/status", response_model=OrderOut)
def change_order_status(
    order_id: int,
    payload: OrderStatusChange,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return order_service.change_order_status(
        db,
        order_id,
        payload.status,
        actor_id=admin.user_id,
        actor_name=admin.name,
        reason=payload.reason,
    )


@router.get("/{order_id}/history", response_model=list[OrderStatusHistoryOut])
def get_order_history(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    order = order_service.get_order(db, order_id)
    _check_owner(order, user)
    return order_service.get_history(db, order_id)
