"""Defaults for the vision and recipe LLMs that are tracked in Git."""

# Model versions used by default. Can be overridden via env if needed.
DEFAULT_VISION_MODEL = "gpt-4o-mini"
DEFAULT_RECIPE_MODEL = "gpt-4o-mini"

# Output-token budgets for each call.
DEFAULT_VISION_MAX_OUTPUT_TOKENS = 1000
DEFAULT_RECIPE_MAX_OUTPUT_TOKENS = 4000

# System instruction for food recognition requests.
RECOGNITION_SYSTEM_PROMPT = (
    "You are a food recognition system. You receive a photo of the contents of a "
    "fridge or a kitchen cabinet. Identify each individual food item and estimate "
    "its quantity when possible. Return ONLY a JSON array of objects shaped like "
    '[{"name": string, "confidence": number, "quantity": string, "unit": string}]. '
    "confidence is an integer from 1 to 100 describing how certain you are. "
    "quantity is a number written as a string. unit is the measurement unit, or an "
    "empty string when none applies. Do not add explanations or notes."
)

# User instruction sent alongside the image.
RECOGNITION_USER_PROMPT = (
    "Identify every visible food item in this image, with quantities where you can "
    "tell them, e.g. 6 eggs, 1 gallon of milk, 2 lbs of apples. Return ONLY a JSON "
    "array of objects with name, confidence, quantity and unit fields."
)

# System instruction for recipe generation requests.
RECIPE_SYSTEM_PROMPT = (
    "You are a cooking assistant who builds recipes from the ingredients a user "
    "already has and nothing else. Respect the available quantities: never use an "
    "ingredient the user does not have and never use more of it than they have. "
    "For every recipe, give the id of a real YouTube video that shows how to cook "
    "the same or a very similar dish; only the id part of the URL, e.g. "
    "'dQw4w9WgXcQ' from https://www.youtube.com/watch?v=dQw4w9WgXcQ."
)
