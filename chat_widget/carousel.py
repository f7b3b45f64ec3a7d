"""
Coverflow product carousel.

The strip holds three copies of the product list and starts on the first
card of the middle copy, so there is always a full copy of neighbours on
both sides. Each navigation animates one step; when the animation ends
outside the middle copy the index snaps back by one copy length with no
animation, which is visually identical. The index space therefore stays
bounded no matter how long the user keeps clicking.

Runtime state lives in `CarouselState` records owned by the engine; the
strip element only carries an opaque handle (`data-carousel-id`).
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .dom import Element, create_element
from .models import PLACEHOLDER_IMAGE, Product
from .utils.smart_logger import get_smart_logger

log = logging.getLogger(__name__)
smart_log = get_smart_logger("carousel")

MIN_VISIBLE = 3
COPIES = 3
OVERLAP = 0.7

# (delay_seconds, callback) -> anything; e.g. loop.call_later
Scheduler = Callable[[float, Callable[[], None]], Any]


@dataclass
class CardStyle:
    scale: float
    opacity: float
    z_index: int
    translate_x_pct: float = 0.0
    translate_z: float = 0.0
    rotate_y: float = 0.0
    interactive: bool = True

    def to_css(self) -> Dict[str, str]:
        return {
            "transform": (
                f"translateX({self.translate_x_pct:g}%) translateZ({self.translate_z:g}px) "
                f"rotateY({self.rotate_y:g}deg) scale({self.scale:g})"
            ),
            "opacity": f"{self.opacity:g}",
            "z-index": str(self.z_index),
            "pointer-events": "auto" if self.interactive else "none",
        }


def coverflow_style(distance: int) -> CardStyle:
    """Per-card presentation keyed on distance from the focused card."""
    side = (distance > 0) - (distance < 0)
    if distance == 0:
        return CardStyle(scale=1.05, opacity=1.0, z_index=20, translate_z=50)
    if abs(distance) == 1:
        return CardStyle(
            scale=0.9,
            opacity=0.8,
            z_index=19,
            translate_x_pct=60 * side,
            translate_z=-20,
            rotate_y=-50 * side,
        )
    return CardStyle(scale=0.8, opacity=0.0, z_index=0, interactive=False)


def pad_products(products: List[Product]) -> List[Product]:
    """Repeat the list until a focused card can have both neighbours."""
    padded = list(products)
    while padded and len(padded) < MIN_VISIBLE:
        padded.extend(products)
    return padded


@dataclass
class CarouselState:
    handle: str
    product_count: int            # padded length N; the strip holds 3N cards
    source_count: int             # products actually supplied
    current_index: int
    strip: Element = field(repr=False)
    is_transitioning: bool = False
    pending: Any = field(default=None, repr=False)

    @property
    def navigable(self) -> bool:
        return self.source_count > 1

    @property
    def in_middle_copy(self) -> bool:
        return self.product_count <= self.current_index < 2 * self.product_count

    @property
    def focused_position(self) -> int:
        """Index of the focused card within the padded list."""
        return self.current_index % self.product_count


class CarouselEngine:
    def __init__(self, *, container_width: float = 360.0, card_width: float = 140.0,
                 transition_ms: int = 400, scheduler: Optional[Scheduler] = None):
        self.container_width = container_width
        self.card_width = card_width
        self.transition_ms = transition_ms
        self.scheduler = scheduler
        self.states: Dict[str, CarouselState] = {}

    # ── construction ────────────────────────────────────────
    def build(self, products: List[Product]) -> Element:
        container = create_element("div", class_name="product-carousel-container")
        if not products:
            return container

        padded = pad_products(products)
        n = len(padded)
        strip = container.append_child(create_element("div", class_name="product-carousel"))
        for product in padded * COPIES:
            strip.append_child(self._build_card(product))

        handle = uuid.uuid4().hex
        strip.set_data("carousel-id", handle)
        state = CarouselState(handle=handle, product_count=n, source_count=len(products),
                              current_index=n, strip=strip)
        self.states[handle] = state

        if state.navigable:
            prev_btn = create_element("button", class_name="carousel-arrow prev", html="&#10094;",
                                      aria_label="Previous product", type="button")
            next_btn = create_element("button", class_name="carousel-arrow next", html="&#10095;",
                                      aria_label="Next product", type="button")
            prev_btn.add_event_listener("click", lambda _e: self.navigate(handle, -1))
            next_btn.add_event_listener("click", lambda _e: self.navigate(handle, 1))
            container.append_child(prev_btn)
            container.append_child(next_btn)

        self._apply(state, animate=False)
        smart_log.carousel_event(handle, "built", index=state.current_index, count=n)
        return container

    def _build_card(self, product: Product) -> Element:
        card = create_element("a", class_name="product-card", href=product.url or "#",
                              target="_blank", rel="noopener noreferrer")
        card.append_child(create_element(
            "img",
            src=product.image_src,
            alt=product.title,
            loading="lazy",
            data_fallback_src=PLACEHOLDER_IMAGE,
            onerror="this.onerror=null;this.src=this.dataset.fallbackSrc;",
        ))
        card.append_child(create_element("h4", class_name="product-title", text=product.title))

        prices = create_element("div", class_name="product-price-container")
        discounted = product.is_discounted
        if product.current_price:
            current_cls = "product-price discounted" if discounted else "product-price"
            prices.append_child(create_element(
                "p", class_name=current_cls, text=f"{product.current_price} {product.currency}".strip()))
        if discounted:
            prices.append_child(create_element(
                "p", class_name="original-price", text=f"{product.original_price} {product.currency}".strip()))
        card.append_child(prices)
        return card

    # ── geometry ────────────────────────────────────────────
    def position_x(self, index: int) -> float:
        center_offset = self.container_width / 2 - self.card_width / 2
        return center_offset - index * (self.card_width * OVERLAP)

    def _apply(self, state: CarouselState, *, animate: bool) -> None:
        strip = state.strip
        strip.style["transition"] = f"transform {self.transition_ms / 1000:g}s ease" if animate else "none"
        strip.style["transform"] = f"translateX({self.position_x(state.current_index):g}px)"
        for idx, card in enumerate(strip.children):
            card.style.update(coverflow_style(idx - state.current_index).to_css())

    # ── navigation ──────────────────────────────────────────
    def navigate(self, handle: str, direction: int) -> bool:
        """Move one card; returns False when the move was dropped."""
        if direction not in (-1, 1):
            raise ValueError(f"direction must be -1 or 1, got {direction!r}")
        state = self.states.get(handle)
        if state is None or not state.navigable:
            return False
        if state.is_transitioning:
            smart_log.carousel_event(handle, "dropped", index=state.current_index)
            return False

        state.is_transitioning = True
        try:
            state.current_index += direction
            self._apply(state, animate=True)
            smart_log.carousel_event(handle, "navigate", index=state.current_index, count=state.product_count)
            self._schedule_transition_end(state)
        except Exception:
            state.is_transitioning = False
            raise
        return True

    def _schedule_transition_end(self, state: CarouselState) -> None:
        handle = state.handle
        delay = self.transition_ms / 1000

        def _done() -> None:
            self.transition_end(handle)

        if delay <= 0:
            _done()
        elif self.scheduler is not None:
            state.pending = self.scheduler(delay, _done)
        else:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # No loop to time the animation; transition_end() must be signalled.
                return
            state.pending = loop.call_later(delay, _done)

    def transition_end(self, handle: str) -> None:
        """Animation finished: snap back into the middle copy and release the lock."""
        state = self.states.get(handle)
        if state is None or not state.is_transitioning:
            return
        try:
            n = state.product_count
            reset = False
            if state.current_index < n:
                state.current_index += n
                reset = True
            elif state.current_index >= 2 * n:
                state.current_index -= n
                reset = True
            if reset:
                self._apply(state, animate=False)
                smart_log.carousel_event(handle, "wrapped", index=state.current_index, count=n)
        finally:
            state.is_transitioning = False
            state.pending = None

    # ── lookup / teardown ───────────────────────────────────
    def get_state(self, handle: str) -> Optional[CarouselState]:
        return self.states.get(handle)

    def state_for(self, element: Element) -> Optional[CarouselState]:
        """State for a carousel container or strip element."""
        strip = element if element.data("carousel-id") else element.query_selector(".product-carousel")
        if strip is None:
            return None
        return self.states.get(strip.data("carousel-id"))

    def dispose(self, handle: str) -> None:
        state = self.states.pop(handle, None)
        if state is not None and hasattr(state.pending, "cancel"):
            state.pending.cancel()

    def dispose_all(self) -> None:
        for handle in list(self.states):
            self.dispose(handle)
