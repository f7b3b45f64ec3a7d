from __future__ import annotations

import asyncio
import random

import pytest

from chat_widget.carousel import CarouselEngine, coverflow_style, pad_products
from chat_widget.models import Product


def products(n: int):
    return [Product(title=f"P{i}", url=f"https://shop.test/{i}", current_price="10.00", currency="EUR")
            for i in range(n)]


class ManualScheduler:
    """Collects transition-end callbacks so tests decide when animations finish."""

    def __init__(self):
        self.pending = []

    def __call__(self, delay, callback):
        self.pending.append(callback)
        return None

    def flush(self):
        callbacks, self.pending = self.pending, []
        for cb in callbacks:
            cb()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def engine(scheduler):
    return CarouselEngine(container_width=360, card_width=140, transition_ms=400, scheduler=scheduler)


def _strip_state(engine, container):
    state = engine.state_for(container)
    assert state is not None
    return state


def test_pad_products_repeats_short_lists():
    one, two = products(1), products(2)
    assert [p.title for p in pad_products(one)] == ["P0", "P0", "P0"]
    assert [p.title for p in pad_products(two)] == ["P0", "P1", "P0", "P1"]
    assert len(pad_products(products(5))) == 5
    assert pad_products([]) == []


def test_build_triples_and_centres_on_middle_copy(engine):
    container = engine.build(products(5))
    strip = container.query_selector(".product-carousel")
    assert len(strip.children) == 15
    state = _strip_state(engine, container)
    assert state.product_count == 5
    assert state.current_index == 5
    assert state.is_transitioning is False
    # 360/2 - 140/2 - 5 * 98
    assert strip.style["transform"] == "translateX(-380px)"
    assert strip.style["transition"] == "none"
    assert len(container.query_selector_all(".carousel-arrow")) == 2


def test_focused_card_is_most_prominent(engine):
    container = engine.build(products(4))
    cards = container.query_selector_all(".product-card")
    state = _strip_state(engine, container)
    focused = cards[state.current_index]
    assert focused.style["z-index"] == "20"
    assert focused.style["opacity"] == "1"
    for neighbour in (cards[state.current_index - 1], cards[state.current_index + 1]):
        assert neighbour.style["z-index"] == "19"
        assert neighbour.style["pointer-events"] == "auto"
    far = cards[state.current_index + 2]
    assert far.style["opacity"] == "0"
    assert far.style["pointer-events"] == "none"


def test_coverflow_style_decreases_with_distance():
    styles = [coverflow_style(d) for d in range(4)]
    for near, far in zip(styles, styles[1:]):
        assert near.scale >= far.scale
        assert near.opacity >= far.opacity
        assert near.z_index >= far.z_index
    assert styles[0].scale > styles[1].scale
    assert coverflow_style(-1).rotate_y == -coverflow_style(1).rotate_y


def test_single_product_has_no_arrows_and_ignores_navigation(engine, scheduler):
    container = engine.build(products(1))
    assert container.query_selector(".carousel-arrow") is None
    state = _strip_state(engine, container)
    assert state.product_count == 3
    assert len(state.strip.children) == 9
    assert engine.navigate(state.handle, 1) is False
    assert state.current_index == 3
    assert scheduler.pending == []


def test_empty_product_list_renders_empty_container(engine):
    container = engine.build([])
    assert container.children == []
    assert engine.states == {}
    assert engine.state_for(container) is None


def test_navigation_is_locked_during_transition(engine, scheduler):
    state = _strip_state(engine, engine.build(products(5)))
    assert engine.navigate(state.handle, 1) is True
    assert state.is_transitioning is True
    assert state.strip.style["transition"] == "transform 0.4s ease"
    # Dropped, not queued
    assert engine.navigate(state.handle, 1) is False
    assert engine.navigate(state.handle, -1) is False
    assert state.current_index == 6

    scheduler.flush()
    assert state.is_transitioning is False
    assert state.current_index == 6


def test_wraps_forward_into_middle_copy(engine, scheduler):
    state = _strip_state(engine, engine.build(products(3)))
    for _ in range(3):
        engine.navigate(state.handle, 1)
        scheduler.flush()
    assert state.current_index == 3
    assert state.strip.style["transition"] == "none"
    assert state.strip.style["transform"] == f"translateX({engine.position_x(3):g}px)"


def test_wraps_backward_into_middle_copy(engine, scheduler):
    state = _strip_state(engine, engine.build(products(4)))
    engine.navigate(state.handle, -1)
    assert state.current_index == 3
    scheduler.flush()
    assert state.current_index == 7
    assert state.is_transitioning is False


def test_five_steps_forward_returns_to_start(engine, scheduler):
    state = _strip_state(engine, engine.build(products(5)))
    start = state.current_index
    for _ in range(5):
        assert engine.navigate(state.handle, 1) is True
        scheduler.flush()
    assert state.current_index % state.product_count == start % state.product_count
    assert state.in_middle_copy


def test_index_stays_in_middle_copy_for_any_sequence(engine, scheduler):
    rng = random.Random(7)
    for count in (1, 2, 3, 5, 8):
        state = _strip_state(engine, engine.build(products(count)))
        for _ in range(200):
            engine.navigate(state.handle, rng.choice((-1, 1)))
            scheduler.flush()
            assert state.product_count <= state.current_index < 2 * state.product_count
            assert state.is_transitioning is False


def test_explicit_transition_end_without_scheduler():
    engine = CarouselEngine(transition_ms=400)
    state = _strip_state(engine, engine.build(products(3)))
    engine.navigate(state.handle, -1)
    assert state.is_transitioning is True
    engine.transition_end(state.handle)
    assert state.current_index == 5
    assert state.is_transitioning is False
    # Stray signals are ignored
    engine.transition_end(state.handle)
    assert state.current_index == 5


def test_zero_duration_transition_completes_immediately():
    engine = CarouselEngine(transition_ms=0)
    state = _strip_state(engine, engine.build(products(2)))
    engine.navigate(state.handle, -1)
    assert state.is_transitioning is False
    assert state.current_index == 7


def test_lock_cleared_when_reset_fails(engine, scheduler, monkeypatch):
    state = _strip_state(engine, engine.build(products(3)))
    engine.navigate(state.handle, -1)

    def boom(*_a, **_k):
        raise RuntimeError("render failed")

    monkeypatch.setattr(engine, "_apply", boom)
    with pytest.raises(RuntimeError):
        scheduler.flush()
    assert state.is_transitioning is False


def test_invalid_direction(engine):
    state = _strip_state(engine, engine.build(products(3)))
    with pytest.raises(ValueError):
        engine.navigate(state.handle, 2)


def test_arrow_clicks_navigate(engine, scheduler):
    container = engine.build(products(4))
    state = _strip_state(engine, container)
    container.query_selector(".carousel-arrow.next").click()
    scheduler.flush()
    container.query_selector(".carousel-arrow.prev").click()
    scheduler.flush()
    container.query_selector(".carousel-arrow.prev").click()
    scheduler.flush()
    assert state.current_index == 7


@pytest.mark.asyncio
async def test_transition_end_scheduled_on_running_loop():
    engine = CarouselEngine(transition_ms=10)
    state = _strip_state(engine, engine.build(products(3)))
    engine.navigate(state.handle, 1)
    assert state.is_transitioning is True
    await asyncio.sleep(0.05)
    assert state.is_transitioning is False
    assert state.current_index == 4


def test_dispose_forgets_state(engine):
    state = _strip_state(engine, engine.build(products(3)))
    engine.dispose_all()
    assert engine.get_state(state.handle) is None
    assert engine.navigate(state.handle, 1) is False


def test_cards_show_prices_and_discount():
    engine = CarouselEngine()
    items = [
        Product(title="Sale", url="https://shop.test/s", current_price="10.00", original_price="15.00", currency="EUR"),
        Product(title="Full", url="https://shop.test/f", current_price="15.00", original_price="10.00", currency="EUR"),
        Product(title="NoImg", url="", image_url=""),
    ]
    container = engine.build(items)
    cards = container.query_selector_all(".product-card")[:3]

    sale, full, no_img = cards
    assert sale.query_selector(".original-price").text == "15.00 EUR"
    assert sale.query_selector(".product-price").has_class("discounted")
    assert full.query_selector(".original-price") is None
    assert not full.query_selector(".product-price").has_class("discounted")
    img = no_img.query_selector("img")
    assert img.attrs["src"].startswith("data:image/svg+xml;base64,")
    assert "fallbackSrc" in img.attrs["onerror"]
    assert no_img.query_selector(".product-price") is None
