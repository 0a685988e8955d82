from fastapi import Depends
from starlette.requests import HTTPConnection

from coursechat.chat.manager import ChatManager, manager
from coursechat.chat.relay import BroadcastRelay
from coursechat.chat.store import MessageStore

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_message_store(connection: HTTPConnection) -> MessageStore:
    """Store built at startup (see coursechat.main)"""
    return connection.app.state.message_store


async def get_chat_manager() -> ChatManager:
    return manager


async def get_relay(
    store: MessageStore = Depends(get_message_store),
    chat_manager: ChatManager = Depends(get_chat_manager)
) -> BroadcastRelay:
    return BroadcastRelay(store, chat_manager)
