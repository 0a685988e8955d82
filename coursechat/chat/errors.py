class ChatError(Exception):
    """Base class for chat relay failures"""


class MalformedFrame(ChatError):
    """Inbound frame is unparseable, has an unknown type or misses required fields"""


class PersistenceError(ChatError):
    """Message store is unreachable or the write failed"""


class ChannelUnavailable(ChatError):
    """Target channel is closed, erroring or too slow at send time"""
