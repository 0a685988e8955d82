import logging

from motor.motor_asyncio import AsyncIOMotorClient

from coursechat.chat.store import InMemoryMessageStore, MessageStore, MongoMessageStore
from coursechat.config import CHAT_STORE_BACKEND, MONGO_DB_NAME, MONGO_URL

logger = logging.getLogger(__name__)


def get_mongo_db():
    """Open the Motor client (connects lazily on first operation)"""
    client = AsyncIOMotorClient(MONGO_URL, tz_aware=True)
    return client[MONGO_DB_NAME]


def build_message_store(backend: str = CHAT_STORE_BACKEND) -> MessageStore:
    if backend == "memory":
        logger.info("Using in-memory chat store; history is lost on restart")
        return InMemoryMessageStore()
    if backend == "mongo":
        return MongoMessageStore(get_mongo_db())
    raise ValueError(f"Unknown CHAT_STORE_BACKEND: {backend}")


async def init_message_store(store: MessageStore):
    """Create indexes on startup; a down database only degrades /health"""
    if isinstance(store, MongoMessageStore):
        try:
            await store.create_indexes()
        except Exception as e:
            logger.warning("Chat index creation warning: %s", e)
