"""Recipe suggestions constrained to what is in the inventory."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from httpx import RequestError, TimeoutException
from openai import OpenAIError
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pantrylens_backend.config import RECIPE_SYSTEM_PROMPT
from pantrylens_backend.services.inventory import parse_quantity
from pantrylens_backend.services.llm import TextLLMClient, extract_json_array
from pantrylens_backend.services.store import InventoryItem, ItemStore, name_key

logger = logging.getLogger(__name__)

RECIPE_COUNT = 3

_SIMPLICITY_LEVELS = ((3, "very simple"), (6, "moderately complex"), (10, "complex"))
_BUDGET_LEVELS = {
    1: "extremely budget-friendly",
    2: "inexpensive",
    3: "moderately priced",
    4: "somewhat premium",
    5: "luxury",
}


class RecipeGenerationError(RuntimeError):
    """Raised when recipes could not be generated or understood."""


class RecipeFilters(BaseModel):
    """Optional preferences narrowing down the suggested recipes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    simplicity: Optional[int] = Field(None, ge=1, le=10)
    budget: Optional[int] = Field(None, ge=1, le=5)
    max_calories: Optional[float] = Field(None, ge=0)
    max_sugar: Optional[float] = Field(None, ge=0)
    min_protein: Optional[float] = Field(None, ge=0)
    max_carbs: Optional[float] = Field(None, ge=0)

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class RecipeRequest(BaseModel):
    """Body of a recipe suggestion request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ingredients: list[str] = Field(..., min_length=1)
    focus_ingredient: Union[str, list[str], None] = None
    filters: RecipeFilters = Field(default_factory=RecipeFilters)

    @field_validator("ingredients")
    @classmethod
    def _strip_ingredients(cls, value: list[str]) -> list[str]:
        names = [name.strip() for name in value if name.strip()]
        if not names:
            raise ValueError("Ingredients list is required")
        return names

    @field_validator("filters", mode="before")
    @classmethod
    def _null_filters(cls, value: object) -> object:
        return {} if value is None else value

    @property
    def focus_ingredients(self) -> list[str]:
        """Focus ingredients as a list; a string is split on commas."""

        raw = self.focus_ingredient
        if raw is None:
            return []
        parts = raw.split(",") if isinstance(raw, str) else raw
        return [part.strip() for part in parts if part.strip()]


@dataclass(slots=True)
class SuggestedRecipe:
    """A recipe returned by the model after validation."""

    id: str
    title: str
    description: str = ""
    ingredients: list[str] = field(default_factory=list)
    used_inventory_items: list[str] = field(default_factory=list)
    cook_time: str = ""
    calories: int | float | None = None
    image: str = ""
    youtube_video_id: str | None = None
    is_favorite: bool = False

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "ingredients": self.ingredients,
            "usedInventoryItems": self.used_inventory_items,
            "cookTime": self.cook_time,
            "calories": self.calories,
            "image": self.image,
            "youtubeVideoId": self.youtube_video_id,
            "isFavorite": self.is_favorite,
        }


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def describe_inventory(items: Iterable[InventoryItem]) -> list[str]:
    """Render inventory items as ``name (quantity unit)`` lines."""

    lines = []
    for item in items:
        amount = f"{item.quantity} {item.unit}".strip() if item.quantity else "1"
        lines.append(f"{item.name.strip().lower()} ({amount})")
    return lines


def _simplicity_label(simplicity: int) -> str:
    for upper, label in _SIMPLICITY_LEVELS:
        if simplicity <= upper:
            return label
    return _SIMPLICITY_LEVELS[-1][1]


def _filter_directives(filters: RecipeFilters) -> list[str]:
    directives = []
    if filters.simplicity is not None:
        directives.append(
            f"- Complexity: create {_simplicity_label(filters.simplicity)} recipes "
            f"({filters.simplicity}/10 complexity level)"
        )
    if filters.budget is not None:
        directives.append(
            f"- Budget: {_BUDGET_LEVELS[filters.budget]} recipes "
            f"({filters.budget}/5 budget level)"
        )
    if filters.max_calories is not None:
        directives.append(
            f"- Calories: at most {_format_number(filters.max_calories)} calories per serving"
        )
    if filters.max_sugar is not None:
        directives.append(
            f"- Sugar: at most {_format_number(filters.max_sugar)}g of sugar per serving"
        )
    if filters.min_protein is not None:
        directives.append(
            f"- Protein: at least {_format_number(filters.min_protein)}g of protein per serving"
        )
    if filters.max_carbs is not None:
        directives.append(
            f"- Carbs: at most {_format_number(filters.max_carbs)}g of carbohydrates per serving"
        )
    return directives


def build_recipe_prompt(
    inventory_lines: Sequence[str],
    *,
    focus_ingredients: Sequence[str] = (),
    filters: RecipeFilters | None = None,
) -> str:
    """Compose the prompt asking for recipes limited to ``inventory_lines``."""

    limits = (
        "using ONLY ingredients from my inventory list and never more of an "
        "ingredient than the quantity I have"
    )
    sections = [
        "I have ONLY these ingredients in my inventory (with quantities): "
        f"{', '.join(inventory_lines) or 'nothing'}."
    ]

    if len(focus_ingredients) > 1:
        quoted = ", ".join(f'"{name}"' for name in focus_ingredients)
        sections.append(
            f"Please suggest exactly {RECIPE_COUNT} recipes that FEATURE these "
            f"ingredients: {quoted}. Each recipe must use at least one of these "
            f"focus ingredients, {limits}."
        )
    elif focus_ingredients:
        sections.append(
            f"Please suggest exactly {RECIPE_COUNT} recipes that FEATURE "
            f'"{focus_ingredients[0]}" as a main ingredient, {limits}.'
        )
    else:
        sections.append(
            f"Please suggest exactly {RECIPE_COUNT} recipes I could make {limits}."
        )

    directives = _filter_directives(filters) if filters is not None else []
    if directives:
        sections.append(
            "Please follow these additional recipe preferences:\n"
            + "\n".join(directives)
        )

    sections.append(
        "Do not suggest any ingredient that is not in my inventory list, and do "
        "not use more of an ingredient than I have. Keep recipes practical.\n"
        "Return a valid JSON array of recipe objects with these properties:\n"
        "- id: a unique string (uuid-like)\n"
        "- title: the recipe name\n"
        "- description: one or two sentences\n"
        "- ingredients: array of strings with specific amounts, drawn ONLY from "
        "my inventory and within my available quantities\n"
        "- usedInventoryItems: array of the inventory item names the recipe uses\n"
        '- cookTime: cooking time as a string, e.g. "30 min"\n'
        "- calories: approximate calories per serving as a number\n"
        "- image: URL of an appetizing photo of this exact dish from unsplash.com, "
        'shaped like "https://images.unsplash.com/photo-[ID]?..."\n'
        "- youtubeVideoId: id of a real YouTube video showing how to make this "
        'dish or a very similar one (the id only, e.g. "dQw4w9WgXcQ")\n'
        "- isFavorite: false\n"
        "Return complete, valid JSON without any explanation text."
    )
    return "\n\n".join(sections)


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    strings = []
    for entry in value:
        if isinstance(entry, bool) or not isinstance(entry, (str, int, float)):
            continue
        text = str(entry).strip()
        if text:
            strings.append(text)
    return strings


def _optional_string(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _calories(value: object) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    amount = parse_quantity(value)
    if amount is None:
        return None
    return int(amount) if amount == amount.to_integral_value() else float(amount)


def _cook_time(value: object) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return f"{_format_number(value)} min"
    return _optional_string(value) or ""


def _to_recipe(
    entry: Mapping[str, Any], known_names: set[str] | None
) -> SuggestedRecipe | None:
    title = _optional_string(entry.get("title"))
    if title is None:
        return None

    raw_id = entry.get("id")
    recipe_id = str(raw_id).strip() if raw_id not in (None, "") else ""
    used = _string_list(entry.get("usedInventoryItems"))
    if known_names is not None:
        used = [name for name in used if name_key(name) in known_names]

    return SuggestedRecipe(
        id=recipe_id or str(uuid.uuid4()),
        title=title,
        description=_optional_string(entry.get("description")) or "",
        ingredients=_string_list(entry.get("ingredients")),
        used_inventory_items=used,
        cook_time=_cook_time(entry.get("cookTime")),
        calories=_calories(entry.get("calories")),
        image=_optional_string(entry.get("image")) or "",
        youtube_video_id=_optional_string(entry.get("youtubeVideoId")),
        is_favorite=False,
    )


def parse_recipe_output(
    raw_text: str | None, *, known_names: Iterable[str] | None = None
) -> list[SuggestedRecipe]:
    """Validate the model's recipes; raise when nothing usable came back."""

    parsed = extract_json_array(raw_text)
    if not parsed.ok:
        logger.error("unparseable recipe output: %s", parsed.error)
        raise RecipeGenerationError("failed to parse recipe suggestions")

    names = (
        {name_key(name) for name in known_names} if known_names is not None else None
    )
    recipes = []
    for entry in parsed.items:
        recipe = _to_recipe(entry, names)
        if recipe is None:
            logger.warning("dropping recipe without a title: %r", entry)
            continue
        recipes.append(recipe)

    if not recipes:
        raise RecipeGenerationError("model returned no usable recipes")
    return recipes


def suggest_recipes(
    client: TextLLMClient,
    store: ItemStore,
    request: RecipeRequest,
    *,
    system_prompt: str = RECIPE_SYSTEM_PROMPT,
) -> list[SuggestedRecipe]:
    """Generate recipes from the current inventory plus request options."""

    inventory = store.list()
    inventory_lines = describe_inventory(inventory)
    known_names = [item.name for item in inventory]
    if not inventory:
        logger.warning("inventory is empty; asking for recipes anyway")

    prompt = build_recipe_prompt(
        inventory_lines,
        focus_ingredients=request.focus_ingredients,
        filters=request.filters,
    )
    logger.info(
        "requesting recipe suggestions",
        extra={
            "inventory_size": len(inventory_lines),
            "focus_count": len(request.focus_ingredients),
            "has_filters": not request.filters.is_empty(),
        },
    )

    try:
        result = client.run_prompt(prompt=prompt, system_prompt=system_prompt)
    except (OpenAIError, TimeoutException, RequestError, ValueError) as exc:
        raise RecipeGenerationError("recipe model request failed") from exc
    except Exception as exc:  # pragma: no cover - surface upstream errors
        raise RecipeGenerationError("recipe model invocation failed") from exc

    recipes = parse_recipe_output(result.raw_text, known_names=known_names)
    logger.info("model suggested %d recipe(s)", len(recipes))
    return recipes
