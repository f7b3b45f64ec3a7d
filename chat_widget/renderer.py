"""
Turns messages into bubbles (and carousels) inside the message log.
"""
from __future__ import annotations

import logging
from typing import Any, List

from .carousel import CarouselEngine
from .dom import Element, create_element
from .enums import Sender
from .models import Segment
from .normalizer import normalize

log = logging.getLogger(__name__)


def _as_segments(payload: Any) -> List[Segment]:
    if isinstance(payload, Segment):
        return [payload]
    if isinstance(payload, list) and payload and all(isinstance(s, Segment) for s in payload):
        return payload
    return normalize(payload)


class MessageRenderer:
    def __init__(self, carousel: CarouselEngine):
        self.carousel = carousel

    def bubble(self, sender: Sender, text: str) -> Element:
        bubble = create_element("div", class_name=f"chat-widget-message {sender.value}")
        bubble.append_child(create_element("p", text=text))
        return bubble

    def render(self, sender: Sender, payload: Any, container: Element) -> List[Element]:
        """
        Append the elements for one message to `container` and scroll it to
        the end. `payload` is a plain string for users; for the assistant it
        may be segments or any raw reply/persisted value.
        """
        added: List[Element] = []
        if sender == Sender.ASSISTANT:
            for segment in _as_segments(payload):
                if segment.content:
                    added.append(container.append_child(self.bubble(sender, segment.content)))
                if segment.products:
                    added.append(container.append_child(self.carousel.build(segment.products)))
        else:
            added.append(container.append_child(self.bubble(sender, "" if payload is None else str(payload))))

        container.scroll_to_end()
        return added
