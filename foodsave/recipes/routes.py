"""Recipe routes: AI suggestions, saved recipes and the ingredient picker."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..database.base import get_db
from ..dependencies import get_cache, get_current_stakeholder
from ..integrations.anthropic_client import generate_recipes
from ..integrations.cache import CacheService
from ..rate_limit import limiter
from ..stakeholders.schemas import StakeholderIdentity
from .schemas import GenerateRecipesRequest, SaveRecipeRequest
from .service import delete_recipe, list_saved_recipes, recipe_items, save_recipe, serialize_recipe

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.post("/generate")
@limiter.limit(settings.rate_limit_recipes)
def generate(
    request: Request,
    body: GenerateRecipesRequest,
    user: StakeholderIdentity = Depends(get_current_stakeholder),
    cache: CacheService = Depends(get_cache),
):
    ingredients = [i.strip() for i in body.ingredients if i.strip()]
    preferences = [p.strip() for p in body.preferences if p.strip()]
    result = generate_recipes(ingredients, preferences, settings.recipe_model, cache)
    return JSONResponse({"suggestions": result["suggestions"], "from_cache": result["from_cache"]})


@router.post("/save")
def save(
    body: SaveRecipeRequest,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    recipe = save_recipe(
        db,
        user.id,
        title=body.title,
        prep_time=body.prep_time,
        ingredients=body.ingredients,
        steps=body.steps,
        preferences=body.preferences,
    )
    return JSONResponse({"message": "Recipe saved", "recipe": serialize_recipe(recipe)}, status_code=201)


@router.get("/saved")
def saved(
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse({"recipes": [serialize_recipe(r) for r in list_saved_recipes(db, user.id)]})


@router.delete("/{recipe_id}")
def remove(
    recipe_id: int,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    delete_recipe(db, user.id, recipe_id)
    return JSONResponse({"message": "Recipe deleted successfully"})


@router.get("/items")
def items(
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse({"items": recipe_items(db, user.id)})
