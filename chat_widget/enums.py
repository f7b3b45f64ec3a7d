# chat_widget/enums.py
from enum import Enum


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    # Typing indicator only; never persisted
    INDICATOR = "indicator"


class SegmentKind(str, Enum):
    """Shape of one normalized reply segment."""
    PLAIN_TEXT = "plain_text"
    PRODUCT_LIST = "product_list"     # products only, no text
    MIXED = "mixed"                   # text followed by a carousel


class StorageBackend(str, Enum):
    MEMORY = "memory"
    REDIS = "redis"
