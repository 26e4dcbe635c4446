"""Admin back-office routes for the order workflow."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.user import User
from app.schemas.order import OrderOut
from app.schemas.order_settings import OrderSettingsData, OrderSettingsUpdate
from app.services import order_service, settings_service

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/orders/overdue", response_model=list[OrderOut])
def list_overdue_orders(db: Session = Depends(get_db)):
    """Orders whose pickup window plus tolerance has elapsed."""
    return order_service.get_overdue_orders(db)


@router.post("/orders/overdue/mark", response_model=list[OrderOut])
def mark_overdue_orders(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    """Apply the overdue auto-mark policy now; returns the orders it changed."""
    return order_service.mark_overdue_orders(db, admin)


@router.get("/order-settings", response_model=OrderSettingsData)
def get_order_settings(db: Session = Depends(get_db)):
    return settings_service.load_order_settings(db)


@router.put("/order-settings", response_model=OrderSettingsData)
def update_order_settings(
    payload: OrderSettingsUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = settings_service.update_order_settings(db, payload)
    logger.info("Order settings changed by %s", admin.user_id)
    return result
