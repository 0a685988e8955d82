from fastapi import WebSocket
from starlette.websockets import WebSocketState
from typing import Dict, List, Set
import asyncio
import logging

from coursechat.chat.errors import ChannelUnavailable
from coursechat.config import CHAT_DEFAULT_ROOM, CHAT_SEND_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def is_open(websocket: WebSocket) -> bool:
    return (
        websocket.application_state == WebSocketState.CONNECTED
        and websocket.client_state == WebSocketState.CONNECTED
    )


class ChatManager:
    """Registry of open chat channels, grouped by room"""

    def __init__(self, send_timeout: float = CHAT_SEND_TIMEOUT_SECONDS):
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.send_timeout = send_timeout
        self.lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, room: str = CHAT_DEFAULT_ROOM):
        await websocket.accept()
        async with self.lock:
            channels = self.rooms.setdefault(room, set())
            channels.add(websocket)
            open_count = len(channels)
        logger.info("Channel joined room %s (%d open)", room, open_count)

    async def disconnect(self, websocket: WebSocket, room: str = CHAT_DEFAULT_ROOM):
        async with self.lock:
            channels = self.rooms.get(room)
            if channels is None or websocket not in channels:
                return
            channels.discard(websocket)
            # Drop empty rooms
            if not channels:
                del self.rooms[room]
        logger.info("Channel left room %s", room)

    async def channels(self, room: str = CHAT_DEFAULT_ROOM) -> List[WebSocket]:
        async with self.lock:
            return list(self.rooms.get(room, ()))

    async def connection_count(self) -> int:
        async with self.lock:
            return sum(len(channels) for channels in self.rooms.values())

    async def send(self, websocket: WebSocket, frame: dict):
        """Send one frame to one channel, bounded by send_timeout"""
        if not is_open(websocket):
            raise ChannelUnavailable("channel is not open")
        try:
            await asyncio.wait_for(websocket.send_json(frame), timeout=self.send_timeout)
        except asyncio.TimeoutError as e:
            raise ChannelUnavailable(f"send timed out after {self.send_timeout}s") from e
        except Exception as e:
            raise ChannelUnavailable(f"send failed: {e}") from e

    async def _deliver(self, websocket: WebSocket, frame: dict) -> bool:
        try:
            await self.send(websocket, frame)
            return True
        except ChannelUnavailable as e:
            logger.info("Skipping chat channel: %s", e)
            return False

    async def broadcast(self, room: str, frame: dict) -> int:
        """
        Fan a frame out to every open channel of a room.

        Sends run concurrently so one slow or dead channel cannot hold up
        the others. Channels that could not be reached are unregistered.
        Returns the number of channels that received the frame.
        """
        # Snapshot so removals during the fan-out can't break iteration
        targets = await self.channels(room)
        if not targets:
            return 0

        results = await asyncio.gather(*(self._deliver(ws, frame) for ws in targets))

        for ws, delivered in zip(targets, results):
            if not delivered:
                await self.disconnect(ws, room)

        return sum(1 for delivered in results if delivered)


manager = ChatManager()
