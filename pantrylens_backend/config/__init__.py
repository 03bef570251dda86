"""Static configuration shipped with the codebase."""

# LLM defaults are in a dedicated module for clarity and reuse.
from .llm import (
    DEFAULT_RECIPE_MAX_OUTPUT_TOKENS,
    DEFAULT_RECIPE_MODEL,
    DEFAULT_VISION_MAX_OUTPUT_TOKENS,
    DEFAULT_VISION_MODEL,
    RECIPE_SYSTEM_PROMPT,
    RECOGNITION_SYSTEM_PROMPT,
    RECOGNITION_USER_PROMPT,
)

__all__ = [
    "DEFAULT_RECIPE_MAX_OUTPUT_TOKENS",
    "DEFAULT_RECIPE_MODEL",
    "DEFAULT_VISION_MAX_OUTPUT_TOKENS",
    "DEFAULT_VISION_MODEL",
    "RECIPE_SYSTEM_PROMPT",
    "RECOGNITION_SYSTEM_PROMPT",
    "RECOGNITION_USER_PROMPT",
]
