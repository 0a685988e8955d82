"""
Chat message store

Append-only persistence for chat messages. Every record gets a store-assigned
id, a strictly increasing ``seq`` and a server timestamp that never goes
backwards, even if the wall clock does.

Two backends share one interface:
    MongoMessageStore   - Motor / MongoDB (production)
    InMemoryMessageStore - process-local list (development, tests)
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from coursechat.chat.errors import PersistenceError
from coursechat.chat.models import ChatMessage
from coursechat.config import CHAT_DEFAULT_ROOM, CHAT_HISTORY_LIMIT

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageStore:
    """Interface shared by the store backends"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_timestamp: Optional[datetime] = None

    def _now(self) -> datetime:
        return self._clock()

    def _next_timestamp(self) -> datetime:
        # Caller holds self._lock
        now = self._now()
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    async def append(self, username: str, role: str, text: str, room: str = CHAT_DEFAULT_ROOM) -> ChatMessage:
        raise NotImplementedError

    async def recent_history(
        self,
        limit: int = CHAT_HISTORY_LIMIT,
        room: str = CHAT_DEFAULT_ROOM,
        after: Optional[int] = None
    ) -> List[ChatMessage]:
        raise NotImplementedError

    async def latest_seq(self, room: str = CHAT_DEFAULT_ROOM) -> Optional[int]:
        latest = await self.recent_history(limit=1, room=room)
        return latest[-1].seq if latest else None

    async def ping(self) -> bool:
        return True


# ==================== IN-MEMORY BACKEND ====================

class InMemoryMessageStore(MessageStore):
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        super().__init__(clock)
        self._messages: List[ChatMessage] = []
        self._seq = 0

    async def append(self, username: str, role: str, text: str, room: str = CHAT_DEFAULT_ROOM) -> ChatMessage:
        async with self._lock:
            self._seq += 1
            message = ChatMessage(
                id=uuid.uuid4().hex,
                seq=self._seq,
                room=room,
                username=username,
                role=role,
                text=text,
                timestamp=self._next_timestamp()
            )
            self._messages.append(message)
            return message

    async def recent_history(
        self,
        limit: int = CHAT_HISTORY_LIMIT,
        room: str = CHAT_DEFAULT_ROOM,
        after: Optional[int] = None
    ) -> List[ChatMessage]:
        if limit <= 0:
            return []

        matching = [m for m in self._messages if m.room == room]
        if after is not None:
            return [m for m in matching if m.seq > after][:limit]
        return matching[-limit:]

    def __len__(self) -> int:
        return len(self._messages)


# ==================== MONGODB BACKEND ====================

def serialize_message(doc: dict) -> ChatMessage:
    timestamp = doc["timestamp"]
    # BSON dates are UTC; clients without tz_aware hand them back naive
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return ChatMessage(
        id=str(doc["_id"]),
        seq=doc["seq"],
        room=doc.get("room", CHAT_DEFAULT_ROOM),
        username=doc["username"],
        role=doc["role"],
        text=doc["text"],
        timestamp=timestamp
    )


class MongoMessageStore(MessageStore):
    """
    Chat messages live in ``chat_messages``; the sequence counter is a single
    document in ``counters`` bumped with an atomic $inc.
    """

    COUNTER_ID = "chat_messages"

    def __init__(self, db: AsyncIOMotorDatabase, clock: Callable[[], datetime] = utc_now):
        super().__init__(clock)
        self.db = db
        self.collection = db.chat_messages
        self.counters = db.counters

    def _now(self) -> datetime:
        # BSON dates hold milliseconds; keep the returned record identical to the stored one
        now = self._clock()
        return now.replace(microsecond=now.microsecond // 1000 * 1000)

    async def create_indexes(self):
        """Create MongoDB indexes for chat history queries"""
        await self.collection.create_index("seq", unique=True)
        await self.collection.create_index([("room", 1), ("seq", 1)])
        logger.info("Chat message indexes created")

    async def _next_seq(self) -> int:
        counter = await self.counters.find_one_and_update(
            {"_id": self.COUNTER_ID},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return counter["seq"]

    async def append(self, username: str, role: str, text: str, room: str = CHAT_DEFAULT_ROOM) -> ChatMessage:
        async with self._lock:
            try:
                seq = await self._next_seq()
                doc = {
                    "_id": ObjectId(),
                    "seq": seq,
                    "room": room,
                    "username": username,
                    "role": role,
                    "text": text,
                    "timestamp": self._next_timestamp()
                }
                await self.collection.insert_one(doc)
            except PyMongoError as e:
                raise PersistenceError(f"Failed to persist chat message: {e}") from e

        return serialize_message(doc)

    async def recent_history(
        self,
        limit: int = CHAT_HISTORY_LIMIT,
        room: str = CHAT_DEFAULT_ROOM,
        after: Optional[int] = None
    ) -> List[ChatMessage]:
        if limit <= 0:
            return []

        query = {"room": room}
        try:
            if after is not None:
                query["seq"] = {"$gt": after}
                cursor = self.collection.find(query).sort("seq", 1).limit(limit)
                docs = await cursor.to_list(length=limit)
            else:
                # Newest first from the DB, flipped to chronological below
                cursor = self.collection.find(query).sort("seq", -1).limit(limit)
                docs = await cursor.to_list(length=limit)
                docs.reverse()
        except PyMongoError as e:
            raise PersistenceError(f"Failed to load chat history: {e}") from e

        return [serialize_message(doc) for doc in docs]

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False
