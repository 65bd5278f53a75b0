"""Saved recipes and the inventory view recipe generation starts from."""

import logging
from datetime import date
from typing import Any

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..errors import NotFound, storage_guard
from ..food.models import FoodItem
from ..notifications.expiry import days_until
from .models import SavedRecipe

logger = logging.getLogger(__name__)


def save_recipe(
    db: Session,
    stakeholder_id: str,
    *,
    title: str,
    prep_time: str,
    ingredients: list[str],
    steps: list[str],
    preferences: list[str] | None = None,
) -> SavedRecipe:
    recipe = SavedRecipe(
        stakeholder_id=stakeholder_id,
        title=title,
        prep_time=prep_time,
        ingredients=list(ingredients),
        steps=list(steps),
        preferences=list(preferences or []),
    )
    with storage_guard("saving recipe", db):
        db.add(recipe)
        db.commit()
        db.refresh(recipe)
    logger.info("Recipe %s saved by %s", recipe.id, stakeholder_id)
    return recipe


def list_saved_recipes(db: Session, stakeholder_id: str) -> list[SavedRecipe]:
    """The stakeholder's saved recipes, newest first."""
    with storage_guard("listing saved recipes"):
        return (
            db.query(SavedRecipe)
            .filter(SavedRecipe.stakeholder_id == stakeholder_id)
            .order_by(SavedRecipe.id.desc())
            .all()
        )


def delete_recipe(db: Session, stakeholder_id: str, recipe_id: int) -> None:
    with storage_guard("deleting recipe", db):
        result = db.execute(
            delete(SavedRecipe)
            .where(SavedRecipe.id == recipe_id, SavedRecipe.stakeholder_id == stakeholder_id)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    if result.rowcount == 0:
        raise NotFound("Recipe not found")


def serialize_recipe(recipe: SavedRecipe) -> dict[str, Any]:
    # Rows written by older clients may hold null lists
    return {
        "id": recipe.id,
        "title": recipe.title,
        "prepTime": recipe.prep_time,
        "ingredients": recipe.ingredients if isinstance(recipe.ingredients, list) else [],
        "steps": recipe.steps if isinstance(recipe.steps, list) else [],
        "preferences": recipe.preferences if isinstance(recipe.preferences, list) else [],
    }


def recipe_items(db: Session, stakeholder_id: str, today: date | None = None) -> list[dict[str, Any]]:
    """The stakeholder's food items, soonest expiry first, for picking ingredients."""
    with storage_guard("listing recipe ingredients"):
        items = (
            db.query(FoodItem)
            .filter(FoodItem.stakeholder_id == stakeholder_id)
            .order_by(FoodItem.expiry_date.asc(), FoodItem.id.asc())
            .all()
        )
    return [
        {
            "id": item.id,
            "name": item.display_name,
            "expiry_date": item.expiry_date.isoformat(),
            "expiry_days": days_until(item.expiry_date, today),
        }
        for item in items
    ]
