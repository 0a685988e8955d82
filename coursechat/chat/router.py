from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from typing import Optional
import logging

from coursechat.chat.dependencies import get_chat_manager, get_message_store, get_relay
from coursechat.chat.errors import ChannelUnavailable, PersistenceError
from coursechat.chat.frames import new_message_frame, subscribed_frame
from coursechat.chat.manager import ChatManager
from coursechat.chat.models import HistoryResponse
from coursechat.chat.relay import BroadcastRelay
from coursechat.chat.store import MessageStore
from coursechat.config import CHAT_DEFAULT_ROOM, CHAT_HISTORY_LIMIT, CHAT_MAX_HISTORY_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    limit: int = Query(CHAT_HISTORY_LIMIT, ge=1, le=CHAT_MAX_HISTORY_LIMIT),
    room: str = Query(CHAT_DEFAULT_ROOM, min_length=1),
    after: Optional[int] = Query(None, ge=0, description="Only messages with seq greater than this cursor"),
    store: MessageStore = Depends(get_message_store)
):
    """
    Last `limit` messages of a room, oldest first.
    Fetch this before opening the live channel and pass the returned
    cursor as `since` to close the gap between the two.
    """
    try:
        messages = await store.recent_history(limit=limit, room=room, after=after)
    except PersistenceError as e:
        logger.warning("History fetch failed: %s", e)
        raise HTTPException(status_code=503, detail="Chat history is temporarily unavailable")

    cursor = messages[-1].seq if messages else after
    return {
        "status": "success",
        "room": room,
        "messages": messages,
        "count": len(messages),
        "cursor": cursor
    }


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    room: str = Query(CHAT_DEFAULT_ROOM, min_length=1),
    since: Optional[int] = Query(None, ge=0),
    store: MessageStore = Depends(get_message_store),
    chat_manager: ChatManager = Depends(get_chat_manager),
    relay: BroadcastRelay = Depends(get_relay)
):
    await chat_manager.connect(websocket, room)

    try:
        cursor = await _catch_up(websocket, store, chat_manager, room, since)
        await chat_manager.send(websocket, subscribed_frame(room, cursor))

        while True:
            event = await websocket.receive()
            if event["type"] == "websocket.disconnect":
                break
            raw = event.get("text")
            if raw is None:
                raw = event.get("bytes")
            await relay.handle_frame(websocket, raw, room=room)

    except WebSocketDisconnect:
        pass
    except ChannelUnavailable as e:
        logger.info("Chat channel dropped during subscribe: %s", e)
    finally:
        await chat_manager.disconnect(websocket, room)


async def _catch_up(
    websocket: WebSocket,
    store: MessageStore,
    chat_manager: ChatManager,
    room: str,
    since: Optional[int]
) -> Optional[int]:
    """Replay messages after `since`; returns the cursor the client is now at"""
    cursor = since
    try:
        if since is None:
            return await store.latest_seq(room)

        # Page until a short page shows the backlog is drained
        while True:
            missed = await store.recent_history(limit=CHAT_MAX_HISTORY_LIMIT, room=room, after=cursor)
            for message in missed:
                await chat_manager.send(websocket, new_message_frame(message))
                cursor = message.seq
            if len(missed) < CHAT_MAX_HISTORY_LIMIT:
                return cursor
    except PersistenceError as e:
        logger.warning("Catch-up for room %s stopped at %s: %s", room, cursor, e)
        return cursor
