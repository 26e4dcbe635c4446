"""Order workflow settings store.

Settings are rows in ``order_settings`` keyed by field name. They are read
fresh on every call so an admin edit applies to the next request without a
restart; a request racing an edit may still see the previous values.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InvalidSettings
from app.models.order import OrderStatus
from app.models.order_settings import OrderSetting
from app.schemas.order_settings import OrderSettingsData, OrderSettingsUpdate

logger = logging.getLogger(__name__)

DEFAULT_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.received: [OrderStatus.preparing, OrderStatus.cancelled],
    OrderStatus.preparing: [OrderStatus.ready_for_pickup, OrderStatus.cancelled],
    OrderStatus.ready_for_pickup: [
        OrderStatus.picked_up,
        OrderStatus.not_picked_up,
        OrderStatus.cancelled,
    ],
    OrderStatus.not_picked_up: [OrderStatus.ready_for_pickup, OrderStatus.cancelled],
    OrderStatus.picked_up: [],
    OrderStatus.cancelled: [],
}


def default_settings() -> dict[str, Any]:
    return {
        "transitions": {k.value: [t.value for t in v] for k, v in DEFAULT_TRANSITIONS.items()},
        "admin_override": False,
        "pickup_window_hours": settings.DEFAULT_PICKUP_WINDOW_HOURS,
        "pickup_tolerance_hours": settings.DEFAULT_PICKUP_TOLERANCE_HOURS,
        "overdue_auto_mark": False,
        "overdue_stock_policy": "hold",
    }


def _known_status(name: str) -> bool:
    return name in OrderStatus.__members__


def _clean_stored_transitions(raw: Any) -> dict[str, list[str]]:
    """Drop entries naming statuses outside the known set."""
    cleaned: dict[str, list[str]] = {}
    if not isinstance(raw, dict):
        logger.warning("Stored transition table is not a mapping; using defaults")
        return default_settings()["transitions"]
    for source, targets in raw.items():
        if not _known_status(source):
            logger.warning("Ignoring unknown status '%s' in stored transition table", source)
            continue
        kept = []
        for target in targets or []:
            if _known_status(target):
                kept.append(target)
            else:
                logger.warning("Ignoring unknown target '%s' for status '%s'", target, source)
        cleaned[source] = kept
    return cleaned


def validate_transitions(table: dict[str, list[str]]) -> dict[str, list[str]]:
    """Reject a transition table that names unknown statuses."""
    unknown = sorted(
        {name for name in table if not _known_status(name)}
        | {t for targets in table.values() for t in targets if not _known_status(t)}
    )
    if unknown:
        raise InvalidSettings(f"Unknown order status in transition table: {', '.join(unknown)}")
    return {source: list(dict.fromkeys(targets)) for source, targets in table.items()}


def load_order_settings(db: Session) -> OrderSettingsData:
    """Stored rows merged over the defaults."""
    data = default_settings()
    for row in db.query(OrderSetting).all():
        if row.key not in data:
            continue
        if row.key == "transitions":
            data["transitions"] = _clean_stored_transitions(row.value)
        else:
            data[row.key] = row.value
    return OrderSettingsData.model_validate(data)


def update_order_settings(db: Session, patch: OrderSettingsUpdate) -> OrderSettingsData:
    changes = patch.model_dump(exclude_unset=True, mode="json")
    nulls = sorted(k for k, v in changes.items() if v is None)
    if nulls:
        raise InvalidSettings(f"Settings must not be null: {', '.join(nulls)}")
    if "transitions" in changes:
        changes["transitions"] = validate_transitions(changes["transitions"])

    for key, value in changes.items():
        row = db.get(OrderSetting, key)
        if row is None:
            db.add(OrderSetting(key=key, value=value))
        else:
            row.value = value
    db.commit()
    logger.info("Order settings updated: %s", ", ".join(sorted(changes)) or "nothing")
    return load_order_settings(db)


def ensure_defaults(db: Session) -> None:
    """Write any missing settings row with its default value."""
    existing = {key for (key,) in db.query(OrderSetting.key).all()}
    missing = {k: v for k, v in default_settings().items() if k not in existing}
    for key, value in missing.items():
        db.add(OrderSetting(key=key, value=value))
    db.commit()
    if missing:
        logger.info("Seeded default order settings: %s", ", ".join(sorted(missing)))
