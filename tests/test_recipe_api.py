import json
import unittest

import httpx
from openai import APIConnectionError

from pantrylens_backend import create_app
from pantrylens_backend.services.llm import LLMResult
from pantrylens_backend.services.store import MemoryItemStore

_RECIPES = [
    {
        "id": f"recipe-{index}",
        "title": title,
        "description": "Quick and easy.",
        "ingredients": ["2 eggs"],
        "usedInventoryItems": ["egg"],
        "cookTime": "15 min",
        "calories": 300,
        "image": "https://images.unsplash.com/photo-1",
        "youtubeVideoId": "abc",
        "isFavorite": False,
    }
    for index, title in enumerate(("Omelette", "Frittata", "Egg Fried Rice"))
]


class _StubTextClient:
    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    def run_prompt(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return LLMResult(raw_text=self.reply)


class RecipeSuggestionsApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        self.store = MemoryItemStore()
        self.store.create({"name": "egg", "location": "Fridge", "quantity": "6"})
        self.store.create({"name": "spinach", "location": "Fridge", "quantity": "1", "unit": "bag"})
        self.store.create({"name": "rice", "location": "Cabinet", "quantity": "2", "unit": "lbs"})
        self.text = _StubTextClient(reply=json.dumps(_RECIPES))
        self.app.extensions["item_store"] = self.store
        self.app.extensions["text_llm_client"] = self.text
        self.client = self.app.test_client()

    def _suggest(self, body):
        return self.client.post("/api/recipe-suggestions", json=body)

    def test_returns_recipes(self):
        response = self._suggest({"ingredients": ["egg", "spinach", "rice"]})

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual([recipe["title"] for recipe in body], ["Omelette", "Frittata", "Egg Fried Rice"])
        self.assertEqual(body[0]["usedInventoryItems"], ["egg"])
        self.assertFalse(body[0]["isFavorite"])
        self.assertIn("egg (6), spinach (1 bag), rice (2 lbs)", self.text.calls[0]["prompt"])

    def test_requested_ingredients_are_not_treated_as_inventory(self):
        self.app.extensions["item_store"] = MemoryItemStore()

        response = self._suggest({"ingredients": ["caviar", "truffle"]})

        self.assertEqual(response.status_code, 200)
        prompt = self.text.calls[0]["prompt"]
        self.assertNotIn("caviar", prompt)
        self.assertNotIn("truffle", prompt)
        self.assertEqual(response.get_json()[0]["usedInventoryItems"], [])

    def test_prompt_names_every_focus_ingredient(self):
        self._suggest(
            {
                "ingredients": ["egg", "spinach", "rice"],
                "focusIngredient": "egg,spinach,rice",
                "filters": {"simplicity": 2, "maxCalories": 600},
            }
        )

        prompt = self.text.calls[0]["prompt"]
        for name in ("egg", "spinach", "rice"):
            self.assertIn(f'"{name}"', prompt)
        self.assertIn("very simple", prompt)
        self.assertIn("at most 600 calories per serving", prompt)

    def test_missing_ingredients_rejected_without_calling_model(self):
        for body in ({}, {"ingredients": []}, {"ingredients": "egg"}):
            with self.subTest(body=body):
                response = self._suggest(body)
                self.assertEqual(response.status_code, 400)
                self.assertIn("message", response.get_json())

        response = self.client.post(
            "/api/recipe-suggestions", data="[]", content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"message": "Ingredients list is required"})
        self.assertEqual(self.text.calls, [])

    def test_invalid_filters_rejected(self):
        response = self._suggest({"ingredients": ["egg"], "filters": {"simplicity": 11}})
        self.assertEqual(response.status_code, 400)
        self.assertIn("simplicity", response.get_json()["message"])
        self.assertEqual(self.text.calls, [])

    def test_unparseable_reply(self):
        self.text.reply = "Here are some ideas: omelette, frittata."
        response = self._suggest({"ingredients": ["egg"]})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {"message": "Failed to generate recipe suggestions"})

    def test_upstream_failure(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        self.text.error = APIConnectionError(request=request)
        response = self._suggest({"ingredients": ["egg"]})
        self.assertEqual(response.status_code, 500)

    def test_model_not_configured(self):
        self.app.extensions.pop("text_llm_client")
        response = self._suggest({"ingredients": ["egg"]})
        self.assertEqual(response.status_code, 503)


if __name__ == "__main__":
    unittest.main()
