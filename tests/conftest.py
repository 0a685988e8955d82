import asyncio
import os
from datetime import datetime, timezone

# Must be set before coursechat.config is imported
os.environ["CHAT_STORE_BACKEND"] = "memory"
os.environ["PAYMENT_PROCESSING_DELAY_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError
from starlette.websockets import WebSocketState

from coursechat.chat.dependencies import get_chat_manager, get_message_store
from coursechat.chat.manager import ChatManager
from coursechat.chat.store import InMemoryMessageStore
from coursechat.main import app


class FakeWebSocket:
    """Stand-in for a Starlette WebSocket channel"""

    def __init__(self, name="ws", fail=False, hang=False, state=WebSocketState.CONNECTED):
        self.name = name
        self.fail = fail
        self.hang = hang
        self.application_state = state
        self.client_state = state
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.hang:
            await asyncio.sleep(3600)
        if self.fail:
            raise RuntimeError("connection reset by peer")
        self.sent.append(data)

    def close(self):
        self.application_state = WebSocketState.DISCONNECTED
        self.client_state = WebSocketState.DISCONNECTED

    def __repr__(self):
        return f"<FakeWebSocket {self.name}>"


# ==================== FAKE MOTOR ====================

def _matches(doc, query):
    for key, cond in query.items():
        if isinstance(cond, dict):
            if "$gt" in cond and not doc.get(key, float("-inf")) > cond["$gt"]:
                return False
        elif doc.get(key) != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction):
        self.docs = sorted(self.docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    async def to_list(self, length=None):
        return [dict(d) for d in self.docs][:length]


class FakeCollection:
    def __init__(self, db):
        self.db = db
        self.docs = []
        self.indexes = []

    def _check(self):
        if self.db.down:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    async def create_index(self, keys, **kwargs):
        self._check()
        self.indexes.append((keys, kwargs))

    async def insert_one(self, doc):
        self._check()
        stored = dict(doc)
        timestamp = stored.get("timestamp")
        if isinstance(timestamp, datetime):
            # BSON dates: UTC, millisecond precision, read back naive
            if timestamp.tzinfo is not None:
                timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
            stored["timestamp"] = timestamp.replace(microsecond=timestamp.microsecond // 1000 * 1000)
        self.docs.append(stored)

    def find(self, query):
        self._check()
        return FakeCursor([d for d in self.docs if _matches(d, query)])

    async def find_one_and_update(self, query, update, upsert=False, return_document=None):
        self._check()
        doc = next((d for d in self.docs if _matches(d, query)), None)
        if doc is None:
            if not upsert:
                return None
            doc = dict(query)
            self.docs.append(doc)
        for field, amount in update.get("$inc", {}).items():
            doc[field] = doc.get(field, 0) + amount
        return dict(doc)


class FakeDatabase:
    def __init__(self):
        self.down = False
        self.chat_messages = FakeCollection(self)
        self.counters = FakeCollection(self)

    async def command(self, name):
        if self.down:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        return {"ok": 1.0}


# ==================== FIXTURES ====================

@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def chat_manager():
    return ChatManager(send_timeout=1)


@pytest.fixture
def client(store, chat_manager):
    app.dependency_overrides[get_message_store] = lambda: store
    app.dependency_overrides[get_chat_manager] = lambda: chat_manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
