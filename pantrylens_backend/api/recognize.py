"""Endpoint that identifies food items in a photo."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from pantrylens_backend.api.deps import (
    error_response,
    get_json_object,
    get_vision_llm_client,
)
from pantrylens_backend.services.recognition import (
    InvalidImageError,
    RecognitionError,
    normalize_image_payload,
    recognize_food_items,
)

bp = Blueprint("recognize", __name__, url_prefix="/api")


@bp.post("/recognize")
def recognize():
    """Pass a base64 image to the vision model and return the food it sees."""

    payload = get_json_object() or {}
    try:
        image = normalize_image_payload(payload.get("imageBase64"))
    except InvalidImageError as exc:
        current_app.logger.warning("rejected recognition request: %s", exc)
        return error_response(str(exc), 400)

    try:
        client = get_vision_llm_client()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        items = recognize_food_items(client, image)
    except RecognitionError:
        current_app.logger.exception("image recognition failed")
        return error_response("Failed to analyze image", 500)

    return jsonify(items=[item.to_json() for item in items])
