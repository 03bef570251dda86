"""CRUD endpoints for fridge and cabinet inventory."""

from __future__ import annotations

from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from pantrylens_backend.api.deps import error_response, get_item_store, get_json_object
from pantrylens_backend.api.schemas import (
    BatchAddRequest,
    InventoryItemCreate,
    InventoryItemUpdate,
    format_validation_error,
)
from pantrylens_backend.models import Location
from pantrylens_backend.services.inventory import add_recognized_items, reconcile_item
from pantrylens_backend.services.store import ItemStoreError

bp = Blueprint("inventory", __name__, url_prefix="/api")

DEFAULT_EXPIRING_WINDOW_DAYS = 3
_MISSING_BODY = "Request body must be a JSON object"


@bp.get("/inventory")
def list_inventory():
    """Return every item, or only those in ``?location=``."""

    location = (request.args.get("location") or "").strip()
    if location and location not in Location.values():
        allowed = ", ".join(sorted(Location.values()))
        return error_response(
            f"Invalid location '{location}'; expected one of {allowed}", 400
        )

    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        items = store.list_by_location(location) if location else store.list()
    except ItemStoreError:
        current_app.logger.exception("failed to fetch inventory")
        return error_response("Failed to fetch inventory items", 500)

    return jsonify([item.to_json() for item in items])


@bp.get("/inventory/expiring")
def list_expiring_inventory():
    """Return items expiring within ``?days=`` days, soonest first."""

    raw_days = request.args.get("days", default=None, type=int)
    days = DEFAULT_EXPIRING_WINDOW_DAYS if raw_days is None else max(raw_days, 0)

    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        items = store.list_expiring(timedelta(days=days))
    except ItemStoreError:
        current_app.logger.exception("failed to fetch expiring inventory")
        return error_response("Failed to fetch inventory items", 500)

    return jsonify([item.to_json() for item in items])


@bp.get("/inventory/<int:item_id>")
def get_inventory_item(item_id: int):
    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        item = store.get_by_id(item_id)
    except ItemStoreError:
        current_app.logger.exception("failed to fetch inventory item %s", item_id)
        return error_response("Failed to fetch inventory item", 500)

    if item is None:
        return error_response("Item not found", 404)
    return jsonify(item.to_json())


@bp.post("/inventory")
def create_inventory_item():
    """Add an item, merging it into a matching record when one exists."""

    payload = get_json_object()
    if payload is None:
        return error_response(_MISSING_BODY, 400)

    try:
        candidate = InventoryItemCreate.model_validate(payload)
    except ValidationError as exc:
        message = format_validation_error(exc)
        current_app.logger.warning("rejected inventory item: %s", message)
        return error_response(message, 400)

    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        result = reconcile_item(store, candidate.to_store_fields())
    except ItemStoreError:
        current_app.logger.exception("failed to create inventory item")
        return error_response("Failed to create inventory item", 500)

    status = 200 if result.quantity_updated else 201
    return jsonify(result.to_json()), status


@bp.post("/inventory/batch")
def add_inventory_batch():
    """Add several recognized items to one location in a single request."""

    payload = get_json_object()
    if payload is None:
        return error_response(_MISSING_BODY, 400)

    try:
        batch = BatchAddRequest.model_validate(payload)
    except ValidationError as exc:
        message = format_validation_error(exc)
        current_app.logger.warning("rejected inventory batch: %s", message)
        return error_response(message, 400)

    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        result = add_recognized_items(
            store,
            batch.location,
            [item.model_dump() for item in batch.items],
        )
    except ItemStoreError:
        current_app.logger.exception("failed to add inventory batch")
        return error_response("Failed to add items to inventory", 500)

    return jsonify(result.to_json())


@bp.put("/inventory/<int:item_id>")
def update_inventory_item(item_id: int):
    """Apply a partial update to an existing item."""

    payload = get_json_object()
    if payload is None:
        return error_response(_MISSING_BODY, 400)

    try:
        changes = InventoryItemUpdate.model_validate(payload)
    except ValidationError as exc:
        message = format_validation_error(exc)
        current_app.logger.warning(
            "rejected update for inventory item %s: %s", item_id, message
        )
        return error_response(message, 400)

    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        item = store.update(item_id, changes.to_store_fields())
    except ItemStoreError:
        current_app.logger.exception("failed to update inventory item %s", item_id)
        return error_response("Failed to update inventory item", 500)

    if item is None:
        return error_response("Item not found", 404)
    return jsonify(item.to_json())


@bp.delete("/inventory/<int:item_id>")
def delete_inventory_item(item_id: int):
    try:
        store = get_item_store()
    except RuntimeError as exc:
        return error_response(str(exc), 503)

    try:
        removed = store.delete(item_id)
    except ItemStoreError:
        current_app.logger.exception("failed to delete inventory item %s", item_id)
        return error_response("Failed to delete inventory item", 500)

    if not removed:
        return error_response("Item not found", 404)
    return "", 204
