"""
Minimal element tree the widget renders into.

It covers what the widget needs from a page: class lists, inline styles,
attributes, event listeners, simple selector queries (`tag`, `.class`,
`#id`, compounds like `button.open`, and descendant chains), a scroll
position, and HTML serialisation with escaping.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from markupsafe import Markup, escape

log = logging.getLogger(__name__)

VOID_TAGS = {"area", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"}

_SIMPLE_SELECTOR = re.compile(r"^(?P<tag>[a-zA-Z][\w-]*)?(?P<rest>(?:[.#][\w-]+)*)$")


@dataclass
class Event:
    type: str
    key: Optional[str] = None
    target: Optional["Element"] = None


Listener = Callable[[Event], Any]


class _Compound:
    def __init__(self, text: str):
        m = _SIMPLE_SELECTOR.match(text)
        if not m:
            raise ValueError(f"unsupported selector: {text!r}")
        self.tag = (m.group("tag") or "").lower() or None
        parts = re.findall(r"[.#][\w-]+", m.group("rest"))
        self.classes = [p[1:] for p in parts if p[0] == "."]
        ids = [p[1:] for p in parts if p[0] == "#"]
        self.id = ids[0] if ids else None

    def matches(self, el: "Element") -> bool:
        if self.tag and el.tag != self.tag:
            return False
        if self.id and el.attrs.get("id") != self.id:
            return False
        return all(c in el.classes for c in self.classes)


class Element:
    def __init__(self, tag: str):
        self.tag = tag.lower()
        self.attrs: Dict[str, Any] = {}
        self.classes: List[str] = []
        self.style: Dict[str, str] = {}
        self.text: Optional[str] = None
        self.html: Optional[Markup] = None
        self.children: List[Element] = []
        self.parent: Optional[Element] = None
        self.scroll_top: int = 0
        self._listeners: Dict[str, List[Listener]] = {}

    def __repr__(self) -> str:
        cls = "." + ".".join(self.classes) if self.classes else ""
        return f"<Element {self.tag}{cls} children={len(self.children)}>"

    # ── classes ─────────────────────────────────────────────
    @property
    def class_name(self) -> str:
        return " ".join(self.classes)

    @class_name.setter
    def class_name(self, value: str) -> None:
        self.classes = [c for c in (value or "").split() if c]

    def add_class(self, *names: str) -> None:
        for name in names:
            if name not in self.classes:
                self.classes.append(name)

    def remove_class(self, *names: str) -> None:
        self.classes = [c for c in self.classes if c not in names]

    def has_class(self, name: str) -> bool:
        return name in self.classes

    # ── attributes ──────────────────────────────────────────
    @property
    def value(self) -> str:
        return str(self.attrs.get("value") or "")

    @value.setter
    def value(self, text: str) -> None:
        self.attrs["value"] = text

    def data(self, key: str) -> Any:
        return self.attrs.get(f"data-{key}")

    def set_data(self, key: str, value: Any) -> None:
        self.attrs[f"data-{key}"] = value

    # ── tree ────────────────────────────────────────────────
    def append_child(self, child: "Element") -> "Element":
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def iter_descendants(self) -> Iterator["Element"]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def contains(self, other: "Element") -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def query_selector_all(self, selector: str) -> List["Element"]:
        chain = [_Compound(part) for part in selector.split()]
        if not chain:
            return []
        out = []
        for el in self.iter_descendants():
            if chain[-1].matches(el) and self._ancestors_match(el, chain[:-1]):
                out.append(el)
        return out

    def query_selector(self, selector: str) -> Optional["Element"]:
        found = self.query_selector_all(selector)
        return found[0] if found else None

    @staticmethod
    def _ancestors_match(el: "Element", chain: List[_Compound]) -> bool:
        node = el.parent
        remaining = list(chain)
        while remaining and node is not None:
            if remaining[-1].matches(node):
                remaining.pop()
            node = node.parent
        return not remaining

    # ── scrolling ───────────────────────────────────────────
    @property
    def scroll_height(self) -> int:
        return len(self.children)

    def scroll_to_end(self) -> None:
        self.scroll_top = self.scroll_height

    # ── events ──────────────────────────────────────────────
    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event: Event | str) -> List[Any]:
        """
        Call listeners in registration order. Coroutines returned by a
        listener are scheduled on the running loop and their tasks returned.
        """
        if isinstance(event, str):
            event = Event(type=event)
        event.target = event.target or self
        results: List[Any] = []
        for listener in list(self._listeners.get(event.type, [])):
            result = listener(event)
            if inspect.iscoroutine(result):
                try:
                    loop = asyncio.get_running_loop()
                except RuntimeError:
                    result.close()
                    raise
                result = loop.create_task(result)
            results.append(result)
        return results

    def click(self) -> List[Any]:
        return self.dispatch_event(Event(type="click"))

    # ── serialisation ───────────────────────────────────────
    def _attr_items(self) -> Iterator[tuple]:
        if self.classes:
            yield "class", self.class_name
        for name, value in self.attrs.items():
            if value is None or value is False:
                continue
            yield name, value
        if self.style:
            yield "style", "; ".join(f"{k}: {v}" for k, v in self.style.items())

    def to_html(self) -> Markup:
        parts = [f"<{self.tag}"]
        for name, value in self._attr_items():
            if value is True:
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{escape(value)}"')
        parts.append(">")
        if self.tag in VOID_TAGS:
            return Markup("".join(parts))
        if self.text is not None:
            parts.append(str(escape(self.text)))
        if self.html is not None:
            parts.append(str(self.html))
        parts.extend(str(child.to_html()) for child in self.children)
        parts.append(f"</{self.tag}>")
        return Markup("".join(parts))


def create_element(tag: str, *, class_name: str = "", text: Optional[str] = None,
                   html: Optional[str] = None, **attrs: Any) -> Element:
    """Build an element; keyword attrs use underscores for dashes (aria_label -> aria-label)."""
    el = Element(tag)
    el.class_name = class_name
    el.text = text
    el.html = Markup(html) if html is not None else None
    for name, value in attrs.items():
        el.attrs[name.rstrip("_").replace("_", "-")] = value
    return el


class Document:
    """A page with <html>, <head> and <body> the widget can mount into."""

    def __init__(self, title: str = ""):
        self.document_element = Element("html")
        self.head = self.document_element.append_child(Element("head"))
        self.body = self.document_element.append_child(Element("body"))
        if title:
            self.head.append_child(create_element("title", text=title))

    def query_selector(self, selector: str) -> Optional[Element]:
        if selector.strip().lower() == "html":
            return self.document_element
        return self.document_element.query_selector(selector)

    def query_selector_all(self, selector: str) -> List[Element]:
        return self.document_element.query_selector_all(selector)

    def set_root_property(self, name: str, value: str) -> None:
        self.document_element.style[name] = value

    def to_html(self) -> Markup:
        return Markup("<!doctype html>\n") + self.document_element.to_html()
