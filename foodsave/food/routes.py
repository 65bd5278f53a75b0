"""Food inventory routes."""

from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database.base import get_db
from ..dependencies import get_current_stakeholder
from ..stakeholders.schemas import StakeholderIdentity
from .service import create_food_item, delete_food_item, list_food_items, serialize_food_item

router = APIRouter(prefix="/fooditems", tags=["food"])


class FoodItemPayload(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    expiry_date: date
    quantity: int = Field(..., gt=0)
    category: str = Field("", max_length=100)
    measure_per_unit: str = Field("", max_length=50)
    unit: str = Field("", max_length=50)


@router.get("")
def food_items(
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse({"food_items": [serialize_food_item(i) for i in list_food_items(db, user.id)]})


@router.post("")
def add_food_item(
    payload: FoodItemPayload,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    item = create_food_item(
        db,
        user.id,
        name=payload.name,
        expiry_date=payload.expiry_date,
        quantity=payload.quantity,
        category=payload.category,
        measure_per_unit=payload.measure_per_unit,
        unit=payload.unit,
    )
    return JSONResponse({"ok": True, "food_item": serialize_food_item(item)}, status_code=201)


@router.delete("/{item_id}")
def remove_food_item(
    item_id: int,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    delete_food_item(db, user.id, item_id)
    return JSONResponse({"ok": True})
