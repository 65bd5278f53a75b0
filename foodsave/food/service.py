"""Food item CRUD for the owning stakeholder."""

from datetime import date

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationError, storage_guard
from .models import FoodItem


def list_food_items(db: Session, stakeholder_id: str) -> list[FoodItem]:
    with storage_guard("listing food items"):
        return (
            db.query(FoodItem)
            .filter(FoodItem.stakeholder_id == stakeholder_id)
            .order_by(FoodItem.id.asc())
            .all()
        )


def create_food_item(
    db: Session,
    stakeholder_id: str,
    *,
    name: str,
    expiry_date: date,
    quantity: int,
    category: str = "",
    measure_per_unit: str = "",
    unit: str = "",
) -> FoodItem:
    if quantity <= 0:
        raise ValidationError("Quantity must be a positive integer")
    item = FoodItem(
        stakeholder_id=stakeholder_id,
        name=name,
        expiry_date=expiry_date,
        quantity=quantity,
        category=category,
        measure_per_unit=measure_per_unit,
        unit=unit,
    )
    with storage_guard("creating food item", db):
        db.add(item)
        db.commit()
        db.refresh(item)
    return item


def delete_food_item(db: Session, stakeholder_id: str, item_id: int) -> None:
    with storage_guard("deleting food item", db):
        result = db.execute(
            delete(FoodItem)
            .where(FoodItem.id == item_id, FoodItem.stakeholder_id == stakeholder_id)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    if result.rowcount == 0:
        raise NotFound("Food item not found")


def serialize_food_item(item: FoodItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "expiry_date": item.expiry_date.isoformat(),
        "quantity": item.quantity,
        "category": item.category or "",
        "donation_id": item.donation_id,
        "measure_per_unit": item.measure_per_unit or "",
        "unit": item.unit or "",
        "notification_read": bool(item.notification_read),
        "notification_deleted": bool(item.notification_deleted),
    }
