"""
Dataclass models for widget session state, messages, products and
normalized reply segments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import SegmentKind, Sender
from .utils.helpers import parse_price

PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iMTAwIiBoZWlnaHQ9IjEwMCIgeG1sbnM9Imh0dHA6Ly93d3cudzMub3JnLzIwMDAvc3ZnIj48"
    "cmVjdCB3aWR0aD0iMTAwIiBoZWlnaHQ9IjEwMCIgZmlsbD0iI2Y1ZjVmNSIvPjx0ZXh0IHg9IjUwIiB5PSI1MCIgdGV4dC1hbmNob3I9Im1pZGRs"
    "ZSIgZmlsbD0iIzk5OTk5OSIgZm9udC1mYW1pbHk9IkFyaWFsIiBmb250LXNpemU9IjEyIj5JbWFnZTwvdGV4dD48L3N2Zz4="
)


@dataclass
class Message:
    sender: Sender
    # Plain string, or a list of segment dicts (see normalizer.to_history)
    text: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": self.sender.value, "text": self.text}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Message":
        return cls(sender=Sender(raw["sender"]), text=raw["text"])


@dataclass
class SessionState:
    session_id: str
    is_open: bool = False
    history: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        # Key order is part of the persisted format
        return {
            "sessionId": self.session_id,
            "isOpen": self.is_open,
            "history": [m.to_dict() for m in self.history],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionState":
        """Strict parse; raises ValueError/KeyError/TypeError on a malformed payload."""
        if not isinstance(raw, dict):
            raise TypeError(f"session state must be an object, got {type(raw).__name__}")
        session_id = raw["sessionId"]
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("sessionId must be a non-empty string")
        history_raw = raw["history"]
        if not isinstance(history_raw, list) or not history_raw:
            raise ValueError("history must be a non-empty list")
        history = [Message.from_dict(m) for m in history_raw]
        if any(m.sender == Sender.INDICATOR for m in history):
            raise ValueError("indicator messages are never persisted")
        is_open = raw.get("isOpen", False)
        if not isinstance(is_open, bool):
            raise ValueError(f"isOpen must be a boolean, got {type(is_open).__name__}")
        return cls(session_id=session_id, is_open=is_open, history=history)


@dataclass
class Product:
    title: str = ""
    url: str = ""
    image_url: str = ""
    current_price: Optional[str] = None
    original_price: Optional[str] = None
    currency: str = ""

    @property
    def is_discounted(self) -> bool:
        original = parse_price(self.original_price)
        current = parse_price(self.current_price)
        if original is None or current is None:
            return False
        return original > current

    @property
    def image_src(self) -> str:
        return self.image_url or PLACEHOLDER_IMAGE

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Product":
        if not isinstance(raw, dict):
            return cls(title=str(raw))
        current = raw.get("currentPrice")
        if current in (None, ""):
            current = raw.get("price")
        original = raw.get("originalPrice")
        return cls(
            title=str(raw.get("title") or ""),
            url=str(raw.get("url") or ""),
            image_url=str(raw.get("image_url") or ""),
            current_price=None if current in (None, "") else str(current),
            original_price=None if original in (None, "") else str(original),
            currency=str(raw.get("currency") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"title": self.title, "url": self.url, "image_url": self.image_url}
        if self.current_price is not None:
            out["currentPrice"] = self.current_price
        if self.original_price is not None:
            out["originalPrice"] = self.original_price
        if self.currency:
            out["currency"] = self.currency
        return out


@dataclass
class Segment:
    """One renderable piece of an assistant reply."""
    content: Optional[str] = None
    products: List[Product] = field(default_factory=list)

    @property
    def kind(self) -> SegmentKind:
        if self.products and self.content:
            return SegmentKind.MIXED
        if self.products:
            return SegmentKind.PRODUCT_LIST
        return SegmentKind.PLAIN_TEXT

    @property
    def is_renderable(self) -> bool:
        return bool(self.content) or bool(self.products)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"content": self.content}
        if self.products:
            out["type"] = "product_list"
            out["products"] = [p.to_dict() for p in self.products]
        return out
