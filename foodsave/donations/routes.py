"""Donation routes: offers, approval and the pending badge count."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database.base import get_db
from ..dependencies import get_current_stakeholder
from ..stakeholders.schemas import StakeholderIdentity
from .models import DonationStatus
from .service import count_pending, create_donation, get_donation_for, serialize_donation, set_status

router = APIRouter(prefix="/donations", tags=["donations"])


class DonationOffer(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    charity_id: str = Field(..., min_length=2, max_length=32)
    item_ids: list[int] = Field(..., min_length=1)
    note: str = Field("", max_length=500)


class StatusChange(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    status: DonationStatus


@router.get("/pending-count")
def pending_count(
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse({"count": count_pending(db, user.id)})


@router.post("")
def offer_donation(
    offer: DonationOffer,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    donation = create_donation(db, user.id, offer.charity_id, offer.item_ids, offer.note)
    return JSONResponse(serialize_donation(donation), status_code=201)


@router.get("/{donation_id}")
def donation_detail(
    donation_id: int,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse(serialize_donation(get_donation_for(db, donation_id, user.id)))


@router.put("/{donation_id}/status")
def change_status(
    donation_id: int,
    change: StatusChange,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    donation = set_status(db, donation_id, user.id, change.status)
    return JSONResponse(serialize_donation(donation))
