"""
Reply normalization.

The upstream workflow's response shape is not fixed; over time it has sent
plain strings, single objects and arrays of segments with product lists.
`normalize` accepts all of them and always returns at least one renderable
Segment:

    normalize("Hello there")
    -> [Segment(content="Hello there")]

    normalize([{"content": "Check these out", "type": "product_list",
                "products": [{"title": "A"}]}])
    -> [Segment(content="Check these out", products=[Product(title="A")])]

    normalize("Here: PRODUCTS_JSON: [{\"title\": \"X\"}]")
    -> [Segment(content="Here:", products=[Product(title="X")])]
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from .models import Product, Segment
from .utils.helpers import first_text

log = logging.getLogger(__name__)

COULD_NOT_UNDERSTAND = "Sorry, I couldn't understand the response."
UNHANDLED_FORMAT = "Sorry, I received an unhandled response format."

PRODUCTS_SENTINEL = "PRODUCTS_JSON:"
PRODUCT_LIST_TYPE = "product_list"
TEXT_KEYS = ("content", "message", "text")

_decoder = json.JSONDecoder()


def split_products_sentinel(text: str) -> Tuple[str, Optional[List[Dict[str, Any]]]]:
    """
    Pull an inline `PRODUCTS_JSON: [...]` array out of a text reply.

    Returns (display_text, products). When there is no sentinel, or the JSON
    after it does not parse to a list, the original text comes back unchanged
    with products=None.
    """
    idx = text.find(PRODUCTS_SENTINEL)
    if idx < 0:
        return text, None

    start = idx + len(PRODUCTS_SENTINEL)
    while start < len(text) and text[start].isspace():
        start += 1
    try:
        parsed, end = _decoder.raw_decode(text, start)
    except ValueError as e:
        log.warning(f"SENTINEL_PARSE_FAILED | pos={start} | error={e}")
        return text, None
    if not isinstance(parsed, list):
        log.warning(f"SENTINEL_NOT_A_LIST | type={type(parsed).__name__}")
        return text, None

    remaining = (text[:idx] + text[end:]).strip()
    return remaining, [p for p in parsed if p is not None]


def _text_segment(text: str) -> Segment:
    display, products = split_products_sentinel(text)
    if products is None:
        return Segment(content=text)
    return Segment(content=display or None, products=[Product.from_dict(p) for p in products])


def _single(text: Optional[str], fallback: str) -> List[Segment]:
    segment = _text_segment(text) if text else None
    if segment is None or not segment.is_renderable:
        return [Segment(content=fallback)]
    return [segment]


def _products_of(item: Dict[str, Any]) -> List[Product]:
    if item.get("type") != PRODUCT_LIST_TYPE:
        return []
    products = item.get("products")
    if not isinstance(products, list):
        return []
    return [Product.from_dict(p) for p in products if p is not None]


def _segment_from_item(item: Any) -> Optional[Segment]:
    if not isinstance(item, dict):
        return None
    products = _products_of(item)
    content = item.get("content")
    if content is None or content == "":
        return Segment(products=products) if products else None
    content = str(content)
    if products:
        return Segment(content=content, products=products)
    return _text_segment(content)


def _renderable(segments: List[Optional[Segment]]) -> List[Segment]:
    return [s for s in segments if s is not None and s.is_renderable]


def normalize(data: Any) -> List[Segment]:
    """Resolve an arbitrary response value into renderable segments."""
    if isinstance(data, list) and data:
        first = data[0]
        if isinstance(first, dict) and "content" in first:
            segments = _renderable([_segment_from_item(item) for item in data])
            return segments or [Segment(content=COULD_NOT_UNDERSTAND)]
        text = first_text(first, *TEXT_KEYS) if isinstance(first, dict) else None
        return _single(text, COULD_NOT_UNDERSTAND)

    if isinstance(data, dict):
        segment = _segment_from_item(data)
        if segment is not None and segment.is_renderable:
            return [segment]
        text = first_text(data, *TEXT_KEYS)
        return _single(text, UNHANDLED_FORMAT)

    if isinstance(data, str):
        return _single(data, UNHANDLED_FORMAT)

    return [Segment(content=UNHANDLED_FORMAT)]


def to_history(segments: List[Segment]) -> Any:
    """
    Persisted form of a normalized reply: a bare string for a single
    plain-text segment, otherwise a list of segment dicts. Both forms
    normalize back to the same segments.
    """
    if len(segments) == 1 and not segments[0].products:
        return segments[0].content or ""
    return [s.to_dict() for s in segments]
