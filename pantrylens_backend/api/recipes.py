"""Recipe suggestions generated from the current inventory."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from pydantic import ValidationError

from pantrylens_backend.api.deps import (
    error_response,
    get_item_store,
    get_json_object,
    get_text_llm_client,
)
from pantrylens_backend.api.schemas import format_validation_error
from pantrylens_backend.services.recipes import (
    RecipeGenerationError,
    RecipeRequest,
    suggest_recipes,
)
from pantrylens_backend.services.store import ItemStoreError

bp = Blueprint("recipes", __name__, url_prefix="/api")

_GENERATION_FAILED = "Failed to generate recipe suggestions"


@bp.post("/recipe-suggestions")
def recipe_suggestions():
    """Ask the text model for recipes that only use what is on hand."""

    payload = get_json_object()
    if payload is None:
        return error_response("Ingredients list is required", 400)

    try:
        recipe_request = RecipeRequest.model_validate(payload)
    except ValidationError as exc:
        message = format_validation_error(exc)
        current_app.logger.warning("rejected recipe request: %s", message)
        return error_response(message, 400)

    try:
        store = get_item_store()
        client = get_text_llm_client()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        recipes = suggest_recipes(client, store, recipe_request)
    except RecipeGenerationError:
        current_app.logger.exception("recipe generation failed")
        return error_response(_GENERATION_FAILED, 500)
    except ItemStoreError:
        current_app.logger.exception("failed to load inventory for recipes")
        return error_response(_GENERATION_FAILED, 500)

    return jsonify([recipe.to_json() for recipe in recipes])
