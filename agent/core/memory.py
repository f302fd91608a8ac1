"""Conversation and profile persistence.

One conversation document and one profile document per phone number. The
conversation is an append-only message log; the profile is replaced wholesale
on every extraction run. There is no transaction spanning the two.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING
from pymongo.database import Database

from agent.core.models import Message, ProfileRecord, Role, utcnow


CHATS_COLLECTION = "chats"
PROFILES_COLLECTION = "userinfos"


class ConversationStore(ABC):
    @abstractmethod
    def append(self, user_id: str, role: Role, text: str) -> None:
        """Append one message, creating the conversation if absent."""

    @abstractmethod
    def read(self, user_id: str) -> List[Message]:
        """Return the messages in insertion order, or an empty list."""

    @abstractmethod
    def upsert_profile(self, user_id: str, profile: ProfileRecord) -> None:
        """Replace any stored profile for ``user_id`` with ``profile``."""

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        """Return the stored profile for ``user_id``, or ``None``."""


class InMemoryConversationStore(ConversationStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chats: Dict[str, List[Message]] = {}
        self._profiles: Dict[str, ProfileRecord] = {}

    def append(self, user_id: str, role: Role, text: str) -> None:
        message = Message(role=role, text=text, timestamp=utcnow())
        with self._lock:
            self._chats.setdefault(user_id, []).append(message)

    def read(self, user_id: str) -> List[Message]:
        with self._lock:
            return [m.model_copy() for m in self._chats.get(user_id, [])]

    def upsert_profile(self, user_id: str, profile: ProfileRecord) -> None:
        with self._lock:
            self._profiles[user_id] = profile.model_copy(deep=True)

    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        with self._lock:
            profile = self._profiles.get(user_id)
            return None if profile is None else profile.model_copy(deep=True)


class MongoConversationStore(ConversationStore):
    def __init__(self, db: Database) -> None:
        self._chats = db[CHATS_COLLECTION]
        self._profiles = db[PROFILES_COLLECTION]

    def ensure_indexes(self) -> None:
        self._chats.create_index([("phone", ASCENDING)], unique=True)
        self._profiles.create_index([("phone", ASCENDING)], unique=True)

    def append(self, user_id: str, role: Role, text: str) -> None:
        message = Message(role=role, text=text, timestamp=utcnow())
        self._chats.update_one(
            {"phone": user_id},
            {"$push": {"messages": message.to_document()}},
            upsert=True,
        )

    def read(self, user_id: str) -> List[Message]:
        doc = self._chats.find_one({"phone": user_id})
        if not doc:
            return []
        return [_message_from_document(item) for item in doc.get("messages") or []]

    def upsert_profile(self, user_id: str, profile: ProfileRecord) -> None:
        # $set on the whole sub-document drops fields from earlier runs
        self._profiles.update_one(
            {"phone": user_id},
            {"$set": {"data": profile.to_document()}},
            upsert=True,
        )

    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        doc = self._profiles.find_one({"phone": user_id})
        if not doc or not isinstance(doc.get("data"), dict):
            return None
        return ProfileRecord.model_validate(doc["data"])


def _message_from_document(item: Dict[str, Any]) -> Message:
    role = Role.USER if item.get("role") == Role.USER.value else Role.MODEL
    fields: Dict[str, Any] = {"role": role, "text": item.get("text") or ""}
    if item.get("timestamp") is not None:
        fields["timestamp"] = item["timestamp"]
    return Message(**fields)
