"""Expiry notifications: feed computation and per-item read/deleted flags.

Flag updates are single conditional UPDATEs scoped to the owner, so an item
belonging to someone else is indistinguishable from a missing one.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import NotFound, storage_guard
from ..food.models import FoodItem
from .expiry import classify_expiry

logger = logging.getLogger(__name__)


def _owned_items(db: Session, stakeholder_id: str) -> list[FoodItem]:
    return (
        db.query(FoodItem)
        .filter(FoodItem.stakeholder_id == stakeholder_id)
        .order_by(FoodItem.id.asc())
        .all()
    )


def _annotate(item: FoodItem, today: date | None) -> dict[str, Any]:
    expiry = classify_expiry(item.expiry_date, today)
    return {
        "id": item.id,
        "name": item.display_name,
        "status": expiry.status.value,
        "message": expiry.message,
        "diff_days": expiry.diff_days,
        "notification_read": bool(item.notification_read),
    }


def list_notifiable(
    db: Session,
    stakeholder_id: str,
    max_days: int,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Items of the stakeholder expiring within ``max_days`` days (or already expired)."""
    with storage_guard("listing notifications"):
        items = _owned_items(db, stakeholder_id)
    notifications = []
    for item in items:
        if item.notification_deleted:
            continue
        entry = _annotate(item, today)
        if entry["diff_days"] <= max_days:
            notifications.append(entry)
    return notifications


def list_inventory(db: Session, stakeholder_id: str, today: date | None = None) -> list[dict[str, Any]]:
    """Every item of the stakeholder with its expiry annotation, unfiltered."""
    with storage_guard("listing inventory"):
        items = _owned_items(db, stakeholder_id)
    return [_annotate(item, today) for item in items]


def _set_flag(db: Session, stakeholder_id: str, item_id: int, values: dict[str, bool], action: str) -> int:
    with storage_guard(action, db):
        result = db.execute(
            update(FoodItem)
            .where(FoodItem.id == item_id, FoodItem.stakeholder_id == stakeholder_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    return result.rowcount


def mark_read(db: Session, stakeholder_id: str, item_id: int) -> None:
    if _set_flag(db, stakeholder_id, item_id, {"notification_read": True}, "marking notification read") == 0:
        raise NotFound("Notification not found")
    logger.debug("Notification %s marked read by %s", item_id, stakeholder_id)


def mark_deleted(db: Session, stakeholder_id: str, item_id: int) -> None:
    if _set_flag(db, stakeholder_id, item_id, {"notification_deleted": True}, "deleting notification") == 0:
        raise NotFound("Notification not found or not owned by user")
    logger.debug("Notification %s deleted by %s", item_id, stakeholder_id)
