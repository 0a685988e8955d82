"""
Wire format of the live chat channel.

Every frame is a JSON object ``{"type": ..., "payload": {...}}``.
Inbound:  ``send_message``  payload ``{username, role, text}``
Outbound: ``new_message``   payload is the persisted ChatMessage
          ``subscribed``    payload ``{room, cursor}``
          ``error``         payload ``{reason, detail}`` (only with rejection acks on)
"""

import json
from typing import Union

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from coursechat.chat.errors import MalformedFrame
from coursechat.chat.models import ChatMessage, ChatSubmission, InboundFrame

SEND_MESSAGE = "send_message"
NEW_MESSAGE = "new_message"
SUBSCRIBED = "subscribed"
ERROR = "error"


def parse_submit_frame(raw: Union[str, bytes, dict, None]) -> ChatSubmission:
    """Decode an inbound frame into a submission or raise MalformedFrame"""
    if raw is None:
        raise MalformedFrame("empty frame")

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedFrame(f"invalid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedFrame("frame must be a JSON object")

    try:
        frame = InboundFrame(**raw)
    except ValidationError as e:
        raise MalformedFrame("frame must carry a type and an object payload") from e

    if frame.type != SEND_MESSAGE:
        raise MalformedFrame(f"unsupported frame type: {frame.type!r}")

    try:
        return ChatSubmission(**frame.payload)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise MalformedFrame(f"missing or empty fields: {', '.join(fields)}") from e


def new_message_frame(message: ChatMessage) -> dict:
    return {"type": NEW_MESSAGE, "payload": jsonable_encoder(message)}


def subscribed_frame(room: str, cursor) -> dict:
    return {"type": SUBSCRIBED, "payload": {"room": room, "cursor": cursor}}


def error_frame(reason: str, detail: str) -> dict:
    return {"type": ERROR, "payload": {"reason": reason, "detail": detail}}
