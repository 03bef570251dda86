"""Client helpers for interacting with vision and text LLMs."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from json import JSONDecodeError
from typing import Any, Optional

from httpx import RequestError, TimeoutException
from openai import OpenAI
from openai.types.responses import Response

from pantrylens_backend.config import (
    DEFAULT_RECIPE_MAX_OUTPUT_TOKENS,
    DEFAULT_RECIPE_MODEL,
    DEFAULT_VISION_MAX_OUTPUT_TOKENS,
    DEFAULT_VISION_MODEL,
)

logger = logging.getLogger(__name__)

# Models often wrap the JSON payload in prose or code fences.
_JSON_ARRAY_OF_OBJECTS = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")


@dataclass
class VisionLLMSettings:
    """Configuration required to talk to the vision model."""

    api_key: str
    model: str = DEFAULT_VISION_MODEL
    max_output_tokens: int = DEFAULT_VISION_MAX_OUTPUT_TOKENS


@dataclass
class TextLLMSettings:
    """Configuration required to talk to a text-only model."""

    api_key: str
    model: str = DEFAULT_RECIPE_MODEL
    max_output_tokens: int = DEFAULT_RECIPE_MAX_OUTPUT_TOKENS
    system_prompt: Optional[str] = None


@dataclass(slots=True)
class LLMResult:
    """Container for the raw text returned by a model."""

    raw_text: str


@dataclass(slots=True)
class JSONArrayParse:
    """Result of pulling a JSON array of objects out of free-form text.

    ``ok`` is False when no array could be found or decoded; ``error`` then
    says why. Entries that are not JSON objects are dropped from ``items``.
    """

    ok: bool
    items: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


def extract_json_array(text: str | None) -> JSONArrayParse:
    """Find and decode the first ``[{...}]`` shaped substring in ``text``."""

    match = _JSON_ARRAY_OF_OBJECTS.search(text or "")
    if match is None:
        return JSONArrayParse(ok=False, error="no JSON array found in model output")

    try:
        payload = json.loads(match.group(0))
    except JSONDecodeError as exc:
        logger.debug("LLM output was not valid JSON", exc_info=True)
        return JSONArrayParse(ok=False, error=f"invalid JSON: {exc.msg}")

    if not isinstance(payload, list):
        return JSONArrayParse(ok=False, error="model output is not a JSON array")

    objects = [entry for entry in payload if isinstance(entry, dict)]
    if len(objects) != len(payload):
        logger.debug(
            "dropped %d non-object entries from model output",
            len(payload) - len(objects),
        )
    return JSONArrayParse(ok=True, items=objects)


def _system_message(text: str) -> dict[str, Any]:
    return {
        "role": "system",
        "content": [{"type": "input_text", "text": text}],
    }


class _ResponsesClient:
    def __init__(self, api_key: str) -> None:
        self._client = OpenAI(api_key=api_key)

    def _create(
        self, *, model: str, content: list[dict[str, Any]], max_output_tokens: int
    ) -> LLMResult:
        try:
            response: Response = self._client.responses.create(
                model=model,
                input=content,
                max_output_tokens=max_output_tokens,
            )
        except TimeoutException as e:
            logger.error("OpenAI / HTTP timeout: %r", e)
            raise
        except RequestError as e:
            logger.error("OpenAI / HTTP network error: %r", e)
            raise
        except Exception:
            logger.exception("OpenAI response error")
            raise

        return LLMResult(raw_text=response.output_text or "")


class VisionLLMClient(_ResponsesClient):
    """Thin wrapper around the OpenAI Responses API for vision requests."""

    def __init__(self, settings: VisionLLMSettings) -> None:
        super().__init__(settings.api_key)
        self._settings = settings

    def analyze_image(
        self,
        *,
        image_base64: str,
        prompt: str,
        system_prompt: str | None = None,
        mime_type: str | None = None,
        max_output_tokens: int | None = None,
    ) -> LLMResult:
        """Send the prompt and an already base64-encoded image to the model."""
        if not image_base64:
            raise ValueError("image_base64 is empty")

        mime = (mime_type or "image/jpeg").strip() or "image/jpeg"
        data_uri = f"data:{mime};base64,{image_base64}"

        content = []
        if system_prompt:
            content.append(_system_message(system_prompt))
        content.append(
            {
                "role": "user",
                "content": [
                    {"type": "input_image", "image_url": data_uri},
                    {"type": "input_text", "text": prompt},
                ],
            }
        )

        return self._create(
            model=self._settings.model,
            content=content,
            max_output_tokens=max_output_tokens or self._settings.max_output_tokens,
        )


class TextLLMClient(_ResponsesClient):
    """Minimal client for JSON-friendly text prompts."""

    def __init__(self, settings: TextLLMSettings) -> None:
        super().__init__(settings.api_key)
        self._settings = settings

    def run_prompt(
        self,
        *,
        prompt: str,
        system_prompt: str | None = None,
        max_output_tokens: int | None = None,
    ) -> LLMResult:
        """Send a text-only prompt to the configured LLM."""

        user_text = (prompt or "").strip()
        if not user_text:
            raise ValueError("prompt is required")

        merged_system_prompt = (system_prompt or self._settings.system_prompt) or ""
        content = []
        if merged_system_prompt:
            content.append(_system_message(merged_system_prompt))

        content.append(
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": user_text},
                ],
            }
        )

        return self._create(
            model=self._settings.model,
            content=content,
            max_output_tokens=max_output_tokens or self._settings.max_output_tokens,
        )


def init_vision_llm_client(settings: VisionLLMSettings) -> VisionLLMClient:
    """Create a ``VisionLLMClient`` instance from the provided settings."""

    return VisionLLMClient(settings)


def init_text_llm_client(settings: TextLLMSettings) -> TextLLMClient:
    """Create a ``TextLLMClient`` instance from the provided settings."""

    return TextLLMClient(settings)
