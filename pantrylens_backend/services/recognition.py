"""Food recognition on fridge and cabinet photos."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from httpx import RequestError, TimeoutException
from openai import OpenAIError

from pantrylens_backend.config import (
    RECOGNITION_SYSTEM_PROMPT,
    RECOGNITION_USER_PROMPT,
)
from pantrylens_backend.services.inventory import format_quantity
from pantrylens_backend.services.llm import VisionLLMClient, extract_json_array

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
DEFAULT_CONFIDENCE = 50
FALLBACK_ITEM_NAME = "unidentified item"

_DATA_URL_MIME = re.compile(r"^data:(image/[\w.+-]+)", re.IGNORECASE)
_BASE64_CHARS = re.compile(r"^[A-Za-z0-9+/=]+$")


class InvalidImageError(ValueError):
    """Raised when the submitted image payload is missing or malformed."""


class RecognitionError(RuntimeError):
    """Raised when the vision model could not be reached."""


@dataclass(slots=True)
class ImagePayload:
    """Bare base64 image data plus the mime type it was declared with."""

    data: str
    mime_type: str = DEFAULT_MIME_TYPE


@dataclass(slots=True)
class RecognizedFoodItem:
    """A food item the vision model spotted in a photo."""

    name: str
    confidence: int
    quantity: str = "1"
    unit: str = ""

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "confidence": self.confidence,
            "quantity": self.quantity,
            "unit": self.unit,
        }


def fallback_items() -> list[RecognizedFoodItem]:
    """Placeholder returned when the model reply cannot be interpreted."""

    return [
        RecognizedFoodItem(
            name=FALLBACK_ITEM_NAME,
            confidence=DEFAULT_CONFIDENCE,
            quantity="1",
            unit="",
        )
    ]


def normalize_image_payload(raw: object) -> ImagePayload:
    """Strip an optional data-URL prefix and validate the base64 body."""

    if not isinstance(raw, str) or not raw.strip():
        raise InvalidImageError("Image data is required")

    text = raw.strip()
    mime_type = DEFAULT_MIME_TYPE
    if "base64," in text:
        header, _, text = text.partition("base64,")
        match = _DATA_URL_MIME.match(header)
        if match:
            mime_type = match.group(1).lower()

    data = "".join(text.split())
    if not data or not _BASE64_CHARS.match(data):
        raise InvalidImageError("Invalid image data format")

    return ImagePayload(data=data, mime_type=mime_type)


def _coerce_confidence(value: object) -> int:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return DEFAULT_CONFIDENCE
    else:
        return DEFAULT_CONFIDENCE
    if not math.isfinite(number):
        return DEFAULT_CONFIDENCE
    return int(min(max(round(number), 1), 100))


def _coerce_text(value: object, default: str) -> str:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return default
        return format_quantity(Decimal(str(value)))
    if isinstance(value, str):
        return value.strip() or default
    return default


def _to_recognized_item(entry: Mapping[str, Any]) -> RecognizedFoodItem | None:
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return RecognizedFoodItem(
        name=name.strip().lower(),
        confidence=_coerce_confidence(entry.get("confidence")),
        quantity=_coerce_text(entry.get("quantity"), "1"),
        unit=_coerce_text(entry.get("unit"), ""),
    )


def parse_recognition_output(raw_text: str | None) -> list[RecognizedFoodItem]:
    """Turn a model reply into recognized items, falling back when unusable."""

    parsed = extract_json_array(raw_text)
    if not parsed.ok:
        logger.warning("unparseable recognition output: %s", parsed.error)
        return fallback_items()

    items = []
    for entry in parsed.items:
        item = _to_recognized_item(entry)
        if item is None:
            logger.warning("dropping recognized entry without a name: %r", entry)
            continue
        items.append(item)

    if not items:
        logger.warning("recognition output contained no usable items")
        return fallback_items()
    return items


def recognize_food_items(
    client: VisionLLMClient,
    image: ImagePayload,
    *,
    prompt: str = RECOGNITION_USER_PROMPT,
    system_prompt: str = RECOGNITION_SYSTEM_PROMPT,
) -> list[RecognizedFoodItem]:
    """Ask the vision model which food items are in ``image``."""

    logger.info(
        "sending image for recognition",
        extra={"image_chars": len(image.data), "mime_type": image.mime_type},
    )
    try:
        result = client.analyze_image(
            image_base64=image.data,
            prompt=prompt,
            system_prompt=system_prompt,
            mime_type=image.mime_type,
        )
    except (OpenAIError, TimeoutException, RequestError, ValueError) as exc:
        raise RecognitionError("vision model request failed") from exc
    except Exception as exc:  # pragma: no cover - surface upstream errors
        raise RecognitionError("vision model invocation failed") from exc

    items = parse_recognition_output(result.raw_text)
    logger.info("recognized %d item(s)", len(items))
    return items
