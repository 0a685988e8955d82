import logging
from typing import Optional

from fastapi import WebSocket

from coursechat.chat.errors import ChannelUnavailable, MalformedFrame, PersistenceError
from coursechat.chat.frames import error_frame, new_message_frame, parse_submit_frame
from coursechat.chat.manager import ChatManager
from coursechat.chat.models import ChatMessage
from coursechat.chat.store import MessageStore
from coursechat.config import CHAT_DEFAULT_ROOM, CHAT_REJECTION_ACKS

logger = logging.getLogger(__name__)


class BroadcastRelay:
    """
    Bridges inbound chat frames to the store and fans the persisted
    record out to the room.

    Failures never reach the sender unless rejection acks are enabled:
    malformed frames and store errors are dropped and logged.
    """

    def __init__(self, store: MessageStore, manager: ChatManager, rejection_acks: bool = CHAT_REJECTION_ACKS):
        self.store = store
        self.manager = manager
        self.rejection_acks = rejection_acks

    async def handle_frame(self, websocket: WebSocket, raw, room: str = CHAT_DEFAULT_ROOM) -> Optional[ChatMessage]:
        try:
            submission = parse_submit_frame(raw)
        except MalformedFrame as e:
            logger.debug("Discarding malformed chat frame: %s", e)
            await self._reject(websocket, "malformed_frame", str(e))
            return None

        try:
            message = await self.store.append(
                submission.username,
                submission.role,
                submission.text,
                room=room
            )
        except PersistenceError as e:
            logger.warning("Chat message from %s not persisted, dropping", submission.username, exc_info=e)
            await self._reject(websocket, "persistence_error", "Message could not be saved")
            return None

        delivered = await self.manager.broadcast(room, new_message_frame(message))
        logger.debug("Message %s (seq %d) delivered to %d channels", message.id, message.seq, delivered)
        return message

    async def _reject(self, websocket: WebSocket, reason: str, detail: str):
        if not self.rejection_acks:
            return
        try:
            await self.manager.send(websocket, error_frame(reason, detail))
        except ChannelUnavailable as e:
            logger.info("Could not send rejection to sender: %s", e)
