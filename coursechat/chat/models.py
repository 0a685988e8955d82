from pydantic import BaseModel, validator
from typing import Optional, Dict, Any
from datetime import datetime

from coursechat.config import CHAT_DEFAULT_ROOM

# ==================== MESSAGE MODELS ====================

class ChatSubmission(BaseModel):
    username: str
    role: str  # student, teacher, admin (not enforced)
    text: str

    @validator("username", "role", "text")
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be empty")
        return v


class ChatMessage(BaseModel):
    id: str
    seq: int
    room: str = CHAT_DEFAULT_ROOM
    username: str
    role: str
    text: str
    timestamp: datetime

# ==================== FRAME MODELS ====================

class InboundFrame(BaseModel):
    type: str
    payload: Dict[str, Any]


class HistoryResponse(BaseModel):
    status: str = "success"
    room: str
    messages: list[ChatMessage]
    count: int
    cursor: Optional[int] = None
