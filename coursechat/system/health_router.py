from fastapi import APIRouter, Depends

from coursechat.chat.dependencies import get_chat_manager, get_message_store
from coursechat.chat.manager import ChatManager
from coursechat.chat.store import MessageStore
from coursechat.config import VERSION

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(
    store: MessageStore = Depends(get_message_store),
    chat_manager: ChatManager = Depends(get_chat_manager)
):
    store_up = await store.ping()
    return {
        "status": "ok" if store_up else "degraded",
        "store": "up" if store_up else "down",
        "connections": await chat_manager.connection_count()
    }


@router.get("/version")
def get_version():
    return {"version": VERSION or "unknown", "status": "stable"}
