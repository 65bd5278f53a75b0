"""Anthropic API client for recipe suggestions, with JSON repair and caching.

Suggestions are cached per (model, ingredients, preferences) so repeated
requests for the same fridge contents cost nothing.
"""

import hashlib
import json
import logging
import re

import anthropic

from ..config import settings
from ..errors import UpstreamError
from ..prompts import RECIPE_SYSTEM_PROMPT, RECIPE_USER_PROMPT
from ..recipes.schemas import validate_recipes
from .cache import CacheService

logger = logging.getLogger(__name__)

MODELS = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
}

PRICING = {
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
    "claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
}

CACHE_TTL = 21600  # 6 hours
RECIPE_COUNT = 3
MAX_TOKENS = 2048

_client: anthropic.Anthropic | None = None


def get_client() -> anthropic.Anthropic:
    """Get or create the singleton Anthropic client."""
    global _client
    if not settings.anthropic_api_key:
        raise UpstreamError("Recipe generation is not configured")
    if _client is None:
        _client = anthropic.Anthropic(api_key=settings.anthropic_api_key)
    return _client


def recipe_request_hash(ingredients: list[str], preferences: list[str]) -> str:
    """Order- and case-insensitive SHA-256 of a recipe request."""
    ingredient_part = ",".join(sorted(i.strip().lower() for i in ingredients if i.strip()))
    preference_part = ",".join(sorted(p.strip().lower() for p in preferences if p.strip()))
    return hashlib.sha256(f"{ingredient_part}|{preference_part}".encode()).hexdigest()


def _calculate_cost(usage: anthropic.types.Usage, model_id: str) -> float:
    pricing = PRICING.get(model_id, PRICING[MODELS["haiku"]])
    input_cost = (usage.input_tokens / 1_000_000) * pricing["input"]
    output_cost = (usage.output_tokens / 1_000_000) * pricing["output"]
    return round(input_cost + output_cost, 6)


def _strip_markdown_wrapper(text: str) -> str:
    """Remove markdown code block wrappers (```json ... ``` or ``` ... ```)."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if "```" in text:
            text = text.rsplit("```", 1)[0]
        text = text.strip()
    return text


def _clean_json_text(text: str) -> str:
    """Fix the syntax slips models make most often."""
    # Trailing commas before } or ]
    text = re.sub(r",\s*([}\]])", r"\1", text)
    # Single-line comments
    text = re.sub(r"//[^\n]*", "", text)
    # Missing commas between adjacent objects
    text = re.sub(r"}\s*\n\s*{", "},\n{", text)
    return text


def _extract_json(raw_text: str) -> list | dict:
    """Parse the model's answer, from cheapest to most aggressive strategy."""
    text = _strip_markdown_wrapper(raw_text)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    try:
        return json.loads(_clean_json_text(text))
    except json.JSONDecodeError:
        pass

    # Prose around the payload: try whichever bracket opens first
    spans = sorted(
        (text.find(opener), text.rfind(closer)) for opener, closer in (("[", "]"), ("{", "}")) if opener in text
    )
    for start, end in spans:
        if end > start:
            try:
                return json.loads(_clean_json_text(text[start : end + 1]))
            except json.JSONDecodeError:
                continue

    raise json.JSONDecodeError("No valid JSON found in AI response", text[:200], 0)


def _call_api(user_prompt: str, model_id: str) -> tuple[list | dict, anthropic.types.Usage]:
    client = get_client()
    try:
        message = client.messages.create(
            model=model_id,
            max_tokens=MAX_TOKENS,
            system=RECIPE_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": user_prompt}],
        )
    except anthropic.APIError as exc:
        logger.error("Recipe generation failed (model=%s): %s", model_id, exc)
        raise UpstreamError() from exc

    raw_text = message.content[0].text
    try:
        return _extract_json(raw_text), message.usage
    except json.JSONDecodeError as exc:
        logger.warning(
            "Recipe JSON parse failed (model=%s, response_len=%d, first_100=%r)",
            model_id,
            len(raw_text),
            raw_text[:100],
        )
        raise UpstreamError("AI returned invalid JSON") from exc


def generate_recipes(
    ingredients: list[str],
    preferences: list[str],
    model: str = "haiku",
    cache: CacheService | None = None,
) -> dict:
    """Suggest recipes for the given ingredients and dietary preferences."""
    model_id = MODELS.get(model, MODELS["haiku"])
    cache_key = f"recipes:{model}:{recipe_request_hash(ingredients, preferences)[:16]}"

    if cache:
        cached = cache.get_json(cache_key)
        if cached:
            return {**cached, "from_cache": True}

    user_prompt = RECIPE_USER_PROMPT.format(
        count=RECIPE_COUNT,
        ingredients=", ".join(ingredients),
        preferences=", ".join(preferences) or "None",
    )
    raw, usage = _call_api(user_prompt, model_id)

    suggestions = validate_recipes(raw)
    if not suggestions:
        raise UpstreamError("AI returned no usable recipes")

    result = {
        "suggestions": suggestions,
        "model_used": model_id,
        "from_cache": False,
        "tokens": {
            "input": usage.input_tokens,
            "output": usage.output_tokens,
            "total": usage.input_tokens + usage.output_tokens,
        },
        "cost_usd": _calculate_cost(usage, model_id),
    }
    logger.info("Generated %d recipes (model=%s, cost=$%.6f)", len(suggestions), model_id, result["cost_usd"])

    if cache:
        cache.set_json(cache_key, {k: v for k, v in result.items() if k != "from_cache"}, CACHE_TTL)
    return result
