"""Recipe request bodies and validation of model-suggested recipes.

Suggestions come from a language model, so they are coerced rather than
trusted: missing fields get defaults, strings become one-element lists.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


def _as_str_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


class RecipeSuggestion(BaseModel):
    """One suggested recipe, as the client receives it."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    prep_time: str = Field("", alias="prepTime")
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)
    preferences: list[str] = Field(default_factory=list)

    @field_validator("title", "prep_time", mode="before")
    @classmethod
    def coerce_string(cls, v: object) -> str:
        return str(v).strip() if v else ""

    @field_validator("ingredients", "steps", "preferences", mode="before")
    @classmethod
    def coerce_list(cls, v: object) -> list[str]:
        return _as_str_list(v)


def validate_recipes(raw: object) -> list[dict]:
    """Coerce the model's answer into a list of recipe dicts.

    Accepts a bare array, an object wrapping one (``{"recipes": [...]}``) or a
    single recipe object. Entries without a title are dropped.
    """
    if isinstance(raw, dict):
        raw = raw.get("recipes") or raw.get("suggestions") or [raw]
    if not isinstance(raw, list):
        return []

    recipes = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        try:
            recipe = RecipeSuggestion.model_validate(entry)
        except ValidationError:
            logger.warning("Dropped malformed recipe suggestion: %r", entry)
            continue
        if recipe.title:
            recipes.append(recipe.model_dump(by_alias=True))
    return recipes


class RecipeRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)


class GenerateRecipesRequest(RecipeRequest):
    ingredients: list[str] = Field(..., min_length=1, max_length=50)
    preferences: list[str] = Field(default_factory=list, max_length=20)


class SaveRecipeRequest(RecipeRequest):
    title: str = Field(..., min_length=1, max_length=255)
    prep_time: str = Field(..., min_length=1, max_length=100, alias="prepTime")
    ingredients: list[str] = Field(..., min_length=1)
    steps: list[str] = Field(..., min_length=1)
    preferences: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
