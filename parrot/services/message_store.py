"""
Message store for Markov training text and per-user opt-in flags.
MongoDB in production; an in-memory variant for tests and local runs.
"""
from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol

from pymongo import ASCENDING, MongoClient

from parrot.config import settings
from parrot.utils.logger import log_info


class MessageStore(Protocol):
    def get_by_users(self, user_ids: Iterable[str]) -> List[str]: ...

    def add_message(self, user_id: str, text: str): ...

    def is_user_opted_in(self, user_id: str) -> bool: ...

    def opt_in(self, user_id: str): ...

    def opt_out(self, user_id: str) -> int: ...

    def delete_user(self, user_id: str) -> int: ...

    def count_messages(self, user_id: str) -> int: ...


class MongoMessageStore:
    """
    Documents:
        messages: {userId, content, createdAt}
        users:    {userId, optedIn, updatedAt}
    """

    def __init__(self, client: MongoClient, db_name: str = None):
        db = client.get_database(db_name or settings.MONGODB_DB)
        self.messages = db[settings.MESSAGES_COLLECTION]
        self.users = db[settings.USERS_COLLECTION]

    def get_by_users(self, user_ids: Iterable[str]) -> List[str]:
        ids = [str(u) for u in user_ids]
        cursor = self.messages.find(
            {"userId": {"$in": ids}},
            {"content": 1, "_id": 0},
        ).sort("_id", ASCENDING)
        return [doc["content"] for doc in cursor if doc.get("content")]

    def add_message(self, user_id: str, text: str):
        self.messages.insert_one({
            "userId": str(user_id),
            "content": text,
            "createdAt": datetime.now(timezone.utc),
        })

    def is_user_opted_in(self, user_id: str) -> bool:
        doc = self.users.find_one({"userId": str(user_id)})
        return bool(doc and doc.get("optedIn"))

    def opt_in(self, user_id: str):
        self.users.update_one(
            {"userId": str(user_id)},
            {"$set": {"optedIn": True, "updatedAt": datetime.now(timezone.utc)}},
            upsert=True,
        )

    def opt_out(self, user_id: str) -> int:
        return self.delete_user(user_id)

    def delete_user(self, user_id: str) -> int:
        result = self.messages.delete_many({"userId": str(user_id)})
        self.users.delete_one({"userId": str(user_id)})
        log_info("Deleted user data", user_id=user_id, messages=result.deleted_count)
        return result.deleted_count

    def count_messages(self, user_id: str) -> int:
        return self.messages.count_documents({"userId": str(user_id)})


class InMemoryMessageStore:
    """Thread-safe dict-backed store with the same interface as MongoMessageStore."""

    def __init__(self, messages: Optional[Dict[str, List[str]]] = None, opted_in: Iterable[str] = ()):
        self._lock = threading.Lock()
        # (user_id, text) in insertion order across users
        self._messages: List[tuple] = []
        self._opted_in = {str(u) for u in opted_in}
        for user_id, texts in (messages or {}).items():
            for text in texts:
                self._messages.append((str(user_id), text))

    def get_by_users(self, user_ids: Iterable[str]) -> List[str]:
        ids = {str(u) for u in user_ids}
        with self._lock:
            return [text for uid, text in self._messages if uid in ids]

    def add_message(self, user_id: str, text: str):
        with self._lock:
            self._messages.append((str(user_id), text))

    def is_user_opted_in(self, user_id: str) -> bool:
        return str(user_id) in self._opted_in

    def opt_in(self, user_id: str):
        with self._lock:
            self._opted_in.add(str(user_id))

    def opt_out(self, user_id: str) -> int:
        return self.delete_user(user_id)

    def delete_user(self, user_id: str) -> int:
        uid = str(user_id)
        with self._lock:
            before = len(self._messages)
            self._messages = [m for m in self._messages if m[0] != uid]
            self._opted_in.discard(uid)
            deleted = before - len(self._messages)
        log_info("Deleted user data", user_id=uid, messages=deleted)
        return deleted

    def count_messages(self, user_id: str) -> int:
        uid = str(user_id)
        with self._lock:
            return sum(1 for m in self._messages if m[0] == uid)


_store: Optional[MessageStore] = None


def get_store() -> MessageStore:
    """Get or create the configured message store."""
    global _store
    if _store is None:
        if settings.MESSAGE_STORE == "memory":
            _store = InMemoryMessageStore()
        else:
            _store = MongoMessageStore(MongoClient(settings.MONGODB_URI))
    return _store


def set_store(store: Optional[MessageStore]):
    """Replace the process-wide store (None resets to the configured default)."""
    global _store
    _store = store
