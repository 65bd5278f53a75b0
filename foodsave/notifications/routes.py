"""Expiry notification routes."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..database.base import get_db
from ..dependencies import get_current_stakeholder
from ..errors import NotFound, ValidationError
from ..stakeholders.schemas import StakeholderIdentity
from .service import list_inventory, list_notifiable, mark_deleted, mark_read

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def notifications(
    days: int | None = Query(None, ge=0, le=365),
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    window = days if days is not None else settings.notification_window_days
    return JSONResponse(list_notifiable(db, user.id, window))


@router.get("/inventory")
def inventory(
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse(list_inventory(db, user.id))


@router.put("/{item_id}/read")
def read_notification(
    item_id: str,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    if not item_id.isdigit():
        raise NotFound("Notification not found")
    mark_read(db, user.id, int(item_id))
    return JSONResponse({"success": True})


@router.put("/{item_id}/delete")
def delete_notification(
    item_id: str,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    if not item_id.isdigit():
        raise ValidationError("Invalid notification ID")
    mark_deleted(db, user.id, int(item_id))
    return JSONResponse({"success": True})
