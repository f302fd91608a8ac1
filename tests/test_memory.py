from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from agent.core.memory import (
    CHATS_COLLECTION,
    PROFILES_COLLECTION,
    InMemoryConversationStore,
    MongoConversationStore,
)
from agent.core.models import ProfileRecord, Role


STAMP = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class ProfileRecordTests(unittest.TestCase):
    def test_from_extracted_coerces_model_output(self) -> None:
        profile = ProfileRecord.from_extracted(
            {
                "name": "  ",
                "city": " Pune ",
                "preferences": "ayurvedic",
                "healthIssues": ["joint pain", "", "joint pain", 7],
                "interestedProducts": None,
                "phone": "111",
                "extractedAt": "1999-01-01T00:00:00Z",
            },
            extracted_at=STAMP,
        )
        self.assertIsNone(profile.name)
        self.assertEqual(profile.city, "Pune")
        self.assertEqual(profile.preferences, ["ayurvedic"])
        self.assertEqual(profile.health_issues, ["joint pain", "7"])
        self.assertEqual(profile.interested_products, [])
        self.assertEqual(profile.extracted_at, STAMP)

    def test_from_extracted_with_non_dict_is_empty(self) -> None:
        profile = ProfileRecord.from_extracted(["not", "a", "dict"], extracted_at=STAMP)
        self.assertIsNone(profile.city)
        self.assertEqual(profile.preferences, [])
        self.assertEqual(profile.extracted_at, STAMP)

    def test_document_uses_camel_case_keys(self) -> None:
        doc = ProfileRecord.from_extracted({"healthIssues": ["stress"]}, extracted_at=STAMP).to_document()
        self.assertEqual(
            set(doc),
            {"name", "city", "preferences", "healthIssues", "interestedProducts", "extractedAt"},
        )
        self.assertEqual(doc["healthIssues"], ["stress"])


class InMemoryConversationStoreTests(unittest.TestCase):
    def test_append_then_read_preserves_order(self) -> None:
        store = InMemoryConversationStore()
        turns = [(Role.USER, "one"), (Role.MODEL, "two"), (Role.USER, "three"), (Role.USER, "")]
        for role, text in turns:
            store.append("111", role, text)

        history = store.read("111")
        self.assertEqual([(m.role, m.text) for m in history], turns)
        self.assertTrue(all(m.timestamp.tzinfo is not None for m in history))

    def test_read_unknown_user_is_empty(self) -> None:
        self.assertEqual(InMemoryConversationStore().read("nobody"), [])

    def test_users_are_isolated(self) -> None:
        store = InMemoryConversationStore()
        store.append("111", Role.USER, "hi")
        store.append("222", Role.USER, "hello")
        self.assertEqual([m.text for m in store.read("111")], ["hi"])

    def test_read_returns_copies(self) -> None:
        store = InMemoryConversationStore()
        store.append("111", Role.USER, "hi")
        store.read("111")[0].text = "changed"
        self.assertEqual(store.read("111")[0].text, "hi")

    def test_upsert_profile_replaces_previous(self) -> None:
        store = InMemoryConversationStore()
        store.upsert_profile("111", ProfileRecord.from_extracted({"name": "Asha", "city": "Pune"}, STAMP))
        store.upsert_profile("111", ProfileRecord.from_extracted({"preferences": ["tea"]}, STAMP))

        profile = store.get_profile("111")
        self.assertIsNotNone(profile)
        self.assertIsNone(profile.name)
        self.assertIsNone(profile.city)
        self.assertEqual(profile.preferences, ["tea"])

    def test_get_profile_unknown_user(self) -> None:
        self.assertIsNone(InMemoryConversationStore().get_profile("nobody"))


class MongoConversationStoreTests(unittest.TestCase):
    def _store(self):
        db = MagicMock()
        chats = MagicMock()
        profiles = MagicMock()
        db.__getitem__.side_effect = {CHATS_COLLECTION: chats, PROFILES_COLLECTION: profiles}.__getitem__
        return MongoConversationStore(db), chats, profiles

    def test_append_pushes_with_upsert(self) -> None:
        store, chats, _ = self._store()
        store.append("111", Role.USER, "Hello")

        chats.update_one.assert_called_once()
        args, kwargs = chats.update_one.call_args
        self.assertEqual(args[0], {"phone": "111"})
        pushed = args[1]["$push"]["messages"]
        self.assertEqual(pushed["role"], "user")
        self.assertEqual(pushed["text"], "Hello")
        self.assertIsInstance(pushed["timestamp"], datetime)
        self.assertTrue(kwargs["upsert"])

    def test_read_maps_documents_in_order(self) -> None:
        store, chats, _ = self._store()
        chats.find_one.return_value = {
            "phone": "111",
            "messages": [
                {"role": "user", "text": "Hello", "timestamp": STAMP},
                {"role": "model", "text": "Hi there", "timestamp": STAMP},
            ],
        }
        history = store.read("111")
        chats.find_one.assert_called_once_with({"phone": "111"})
        self.assertEqual([(m.role, m.text) for m in history], [(Role.USER, "Hello"), (Role.MODEL, "Hi there")])

    def test_read_missing_document_is_empty(self) -> None:
        store, chats, _ = self._store()
        chats.find_one.return_value = None
        self.assertEqual(store.read("111"), [])

    def test_upsert_profile_sets_whole_data_document(self) -> None:
        store, _, profiles = self._store()
        store.upsert_profile("111", ProfileRecord.from_extracted({"city": "Pune"}, STAMP))

        args, kwargs = profiles.update_one.call_args
        self.assertEqual(args[0], {"phone": "111"})
        self.assertEqual(list(args[1]), ["$set"])
        data = args[1]["$set"]["data"]
        self.assertEqual(data["city"], "Pune")
        self.assertEqual(data["extractedAt"], STAMP)
        self.assertTrue(kwargs["upsert"])

    def test_get_profile_reads_data_document(self) -> None:
        store, _, profiles = self._store()
        profiles.find_one.return_value = {
            "phone": "111",
            "data": {"city": "Pune", "healthIssues": ["joint pain"], "extractedAt": STAMP},
        }
        profile = store.get_profile("111")
        self.assertEqual(profile.city, "Pune")
        self.assertEqual(profile.health_issues, ["joint pain"])

    def test_ensure_indexes_makes_phone_unique(self) -> None:
        store, chats, profiles = self._store()
        store.ensure_indexes()
        for collection in (chats, profiles):
            _, kwargs = collection.create_index.call_args
            self.assertTrue(kwargs["unique"])

    def test_store_errors_propagate(self) -> None:
        store, chats, _ = self._store()
        chats.update_one.side_effect = RuntimeError("db down")
        with self.assertRaises(RuntimeError):
            store.append("111", Role.USER, "Hello")


if __name__ == "__main__":
    unittest.main()
