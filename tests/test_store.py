import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pantrylens_backend.models import Base, Location
from pantrylens_backend.services.store import MemoryItemStore, SqlItemStore

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class _ItemStoreContract:
    """Behaviour shared by every store backend."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_create_assigns_ids_and_defaults(self):
        first = self.store.create({"name": "milk", "location": "Fridge"})
        second = self.store.create(
            {"name": "rice", "location": Location.CABINET, "quantity": "2", "unit": "kg"}
        )

        self.assertEqual(first.id, 1)
        self.assertEqual(second.id, 2)
        self.assertEqual(first.quantity, "1")
        self.assertEqual(first.unit, "")
        self.assertIsNone(first.confidence)
        self.assertIsNone(first.image_url)
        self.assertIsNone(first.expiry_date)
        self.assertIs(first.location, Location.FRIDGE)
        self.assertIsNotNone(first.added_date.tzinfo)
        self.assertEqual(second.unit, "kg")

    def test_to_json_uses_explicit_empty_values(self):
        item = self.store.create({"name": "milk", "location": "Fridge"})
        payload = item.to_json()
        self.assertEqual(payload["unit"], "")
        self.assertIsNone(payload["confidence"])
        self.assertIsNone(payload["expiryDate"])
        self.assertIsNone(payload["imageUrl"])
        self.assertEqual(payload["location"], "Fridge")
        self.assertIn("addedDate", payload)

    def test_ids_are_never_reused(self):
        first = self.store.create({"name": "milk", "location": "Fridge"})
        self.assertTrue(self.store.delete(first.id))
        second = self.store.create({"name": "milk", "location": "Fridge"})
        self.assertGreater(second.id, first.id)

    def test_list_keeps_insertion_order_and_filters_location(self):
        self.store.create({"name": "milk", "location": "Fridge"})
        self.store.create({"name": "rice", "location": "Cabinet"})
        self.store.create({"name": "eggs", "location": "Fridge"})

        self.assertEqual([i.name for i in self.store.list()], ["milk", "rice", "eggs"])
        self.assertEqual(
            [i.name for i in self.store.list_by_location("Fridge")], ["milk", "eggs"]
        )
        self.assertEqual(
            [i.name for i in self.store.list_by_location(Location.CABINET)], ["rice"]
        )

    def test_get_by_name_ignores_case(self):
        self.store.create({"name": "Egg", "location": "Cabinet"})
        fridge_egg = self.store.create({"name": "egg", "location": "Fridge"})

        self.assertEqual(self.store.get_by_name("EGG").location, Location.CABINET)
        self.assertEqual(
            self.store.get_by_name(" egg ", location="Fridge").id, fridge_egg.id
        )
        self.assertIsNone(self.store.get_by_name("milk"))

    def test_partial_update_leaves_other_fields(self):
        expiry = NOW + timedelta(days=14)
        item = self.store.create(
            {
                "name": "milk",
                "location": "Fridge",
                "quantity": "1",
                "unit": "gallon",
                "expiry_date": expiry,
            }
        )

        updated = self.store.update(item.id, {"quantity": "5"})

        self.assertEqual(updated.quantity, "5")
        stored = self.store.get_by_id(item.id)
        self.assertEqual(stored.quantity, "5")
        self.assertEqual(stored.name, "milk")
        self.assertIs(stored.location, Location.FRIDGE)
        self.assertEqual(stored.unit, "gallon")
        self.assertEqual(stored.expiry_date, expiry)
        self.assertEqual(stored.added_date, item.added_date)

    def test_update_can_clear_optional_fields(self):
        item = self.store.create(
            {"name": "milk", "location": "Fridge", "unit": "l", "confidence": 90}
        )
        updated = self.store.update(item.id, {"unit": None, "confidence": None})
        self.assertEqual(updated.unit, "")
        self.assertIsNone(updated.confidence)

    def test_update_missing_item_returns_none(self):
        self.assertIsNone(self.store.update(42, {"quantity": "2"}))

    def test_update_rejects_immutable_fields(self):
        item = self.store.create({"name": "milk", "location": "Fridge"})
        with self.assertRaises(ValueError):
            self.store.update(item.id, {"added_date": NOW})

    def test_delete_is_idempotent(self):
        item = self.store.create({"name": "milk", "location": "Fridge"})
        self.assertTrue(self.store.delete(item.id))
        self.assertIsNone(self.store.get_by_id(item.id))
        self.assertFalse(self.store.delete(item.id))

    def test_list_expiring_orders_by_expiry(self):
        self.store.create(
            {"name": "yogurt", "location": "Fridge", "expiry_date": NOW + timedelta(days=2)}
        )
        self.store.create(
            {"name": "rice", "location": "Cabinet", "expiry_date": NOW + timedelta(days=90)}
        )
        self.store.create(
            {"name": "milk", "location": "Fridge", "expiry_date": NOW - timedelta(days=1)}
        )
        self.store.create({"name": "salt", "location": "Cabinet"})

        expiring = self.store.list_expiring(timedelta(days=3), now=NOW)

        self.assertEqual([i.name for i in expiring], ["milk", "yogurt"])


class MemoryItemStoreTests(_ItemStoreContract, unittest.TestCase):
    def make_store(self):
        return MemoryItemStore()

    def test_returned_items_are_copies(self):
        item = self.store.create({"name": "milk", "location": "Fridge"})
        item.quantity = "99"
        self.assertEqual(self.store.get_by_id(item.id).quantity, "1")


class SqlItemStoreTests(_ItemStoreContract, unittest.TestCase):
    def make_store(self):
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        self.addCleanup(engine.dispose)
        return SqlItemStore(
            sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        )


if __name__ == "__main__":
    unittest.main()
