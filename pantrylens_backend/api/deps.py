"""Shared API dependencies and helpers."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from pantrylens_backend.services.llm import TextLLMClient, VisionLLMClient
from pantrylens_backend.services.store import ItemStore


def get_item_store() -> ItemStore:
    """Return the inventory store attached to the application."""

    store: ItemStore | None = current_app.extensions.get("item_store")
    if store is None:
        raise RuntimeError("inventory store is not configured")
    return store


def get_vision_llm_client() -> VisionLLMClient:
    client: VisionLLMClient | None = current_app.extensions.get("vision_llm_client")
    if client is None:
        raise RuntimeError("vision LLM client is not configured")
    return client


def get_text_llm_client() -> TextLLMClient:
    client: TextLLMClient | None = current_app.extensions.get("text_llm_client")
    if client is None:
        raise RuntimeError("text LLM client is not configured")
    return client


def get_json_object() -> dict[str, Any] | None:
    """Return the request body when it is a JSON object, else ``None``."""

    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


def error_response(message: str, status: int):
    return jsonify(message=message), status
