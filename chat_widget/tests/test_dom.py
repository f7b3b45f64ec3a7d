from __future__ import annotations

import pytest

from chat_widget.dom import Document, Event, create_element


def test_html_escapes_text_and_attributes():
    el = create_element("div", class_name="chat-widget-message user", data_note='"quoted"')
    el.append_child(create_element("p", text="<script>alert(1)</script>"))
    html = str(el.to_html())
    assert "&lt;script&gt;" in html
    assert 'data-note="&#34;quoted&#34;"' in html
    assert html.startswith('<div class="chat-widget-message user"')


def test_void_elements_and_trusted_html():
    el = create_element("div", html="<span></span>")
    el.append_child(create_element("input", type="text", value="a&b"))
    html = str(el.to_html())
    assert "<span></span>" in html
    assert '<input type="text" value="a&amp;b">' in html
    assert "</input>" not in html


def test_selectors():
    doc = Document()
    panel = doc.body.append_child(create_element("div", class_name="chat-widget-panel open"))
    area = panel.append_child(create_element("div", class_name="chat-widget-input-area"))
    btn = area.append_child(create_element("button", id="send"))
    assert doc.query_selector("body") is doc.body
    assert doc.query_selector("html") is doc.document_element
    assert doc.query_selector(".chat-widget-panel.open") is panel
    assert doc.query_selector(".chat-widget-input-area button") is btn
    assert doc.query_selector(".chat-widget-panel #send") is btn
    assert doc.query_selector(".missing button") is None
    with pytest.raises(ValueError):
        doc.query_selector("div > p")


def test_append_moves_and_remove_detaches():
    a, b = create_element("div"), create_element("div")
    child = a.append_child(create_element("span"))
    b.append_child(child)
    assert a.children == [] and b.children == [child]
    child.remove()
    assert b.children == [] and child.parent is None


def test_dispatch_calls_listeners_in_order():
    el = create_element("input")
    seen = []
    el.add_event_listener("keydown", lambda e: seen.append(("first", e.key)))
    el.add_event_listener("keydown", lambda e: seen.append(("second", e.target is el)))
    el.dispatch_event(Event(type="keydown", key="Enter"))
    assert seen == [("first", "Enter"), ("second", True)]


def test_coroutine_listener_needs_running_loop():
    el = create_element("button")

    async def handler(_e):
        return None

    el.add_event_listener("click", handler)
    with pytest.raises(RuntimeError):
        el.click()
