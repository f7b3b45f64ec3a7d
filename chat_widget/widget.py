"""
Widget controller.

Owns the widget's elements, its session state and the single in-flight
chat request. Pages get an explicit handle from `init_widget`; replacing a
widget means passing the old handle as `previous` so it is torn down first.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from .carousel import CarouselEngine
from .client import ChatClient, TransportError
from .config import WidgetConfig
from .dom import Document, Element, Event, create_element
from .enums import Sender
from .models import Message, Segment
from .normalizer import normalize, to_history
from .renderer import MessageRenderer
from .session_store import SessionStateStore
from .storage import TabStorage
from .utils.smart_logger import get_smart_logger

log = logging.getLogger(__name__)
smart_log = get_smart_logger("widget")

CONFIG_ERROR_MESSAGE = "Error: Chat service is not configured correctly."
GENERIC_ERROR_MESSAGE = "Sorry, something went wrong. Please try again."

_CHAT_ICON = (
    '<svg class="chat-widget-button-icon" fill="currentColor" viewBox="0 0 24 24">'
    '<path d="M20 2H4c-1.1 0-2 .9-2 2v12c0 1.1.9 2 2 2h4v3c0 .6.4 1 1 1 .2 0 .5-.1.7-.3L14.6 18H20c1.1 '
    '0 2-.9 2-2V4c0-1.1-.9-2-2-2z"/></svg>'
)
_SEND_ICON = (
    '<svg class="chat-widget-send-icon" fill="currentColor" viewBox="0 0 24 24">'
    '<path d="M2.01 21L23 12 2.01 3 2 10l15 2-15 2z"/></svg>'
)


class ChatTransport(Protocol):
    async def send(self, message: str, session_id: str) -> Any: ...


class ChatWidget:
    def __init__(
        self,
        config: Union[WidgetConfig, Mapping[str, Any], None] = None,
        *,
        storage: TabStorage,
        client: Optional[ChatTransport] = None,
        document: Optional[Document] = None,
        carousel: Optional[CarouselEngine] = None,
    ):
        self.config = config if isinstance(config, WidgetConfig) else WidgetConfig.from_mapping(config)
        self.document = document or Document()
        self.store = SessionStateStore(storage, self.config.welcome_message)
        self.state = self.store.load()
        if client is None and self.config.api_url:
            client = ChatClient(self.config.api_url)
        self.client = client
        self.carousel = carousel or CarouselEngine(
            container_width=self.config.container_width,
            card_width=self.config.card_width,
            transition_ms=self.config.transition_ms,
        )
        self.renderer = MessageRenderer(self.carousel)
        self.elements: Dict[str, Element] = {}
        self.is_thinking = False
        self.mounted = False

    @property
    def session_id(self) -> str:
        return self.state.session_id

    # ── lifecycle ───────────────────────────────────────────
    def init(self) -> "ChatWidget":
        if self.document.query_selector(".chat-widget-button"):
            log.warning("WIDGET_ALREADY_INITIALIZED | a chat widget is already mounted on this page")
            return self

        self._create_elements()
        self._attach_event_listeners()

        container = self.document.query_selector(self.config.container)
        if container is None:
            log.error(f"WIDGET_CONTAINER_NOT_FOUND | selector={self.config.container!r}")
            return self
        container.append_child(self.elements["button"])
        container.append_child(self.elements["panel"])

        self.apply_theme()
        self.restore_ui_state()
        self.mounted = True
        smart_log.widget_event(self.session_id, "init", container=self.config.container,
                               messages=len(self.state.history), open=self.state.is_open)
        return self

    def destroy(self) -> None:
        for name in ("button", "panel"):
            el = self.elements.get(name)
            if el is not None:
                el.remove()
        self.carousel.dispose_all()
        self.mounted = False
        smart_log.widget_event(self.session_id, "destroy")

    # ── elements ────────────────────────────────────────────
    def _create_elements(self) -> None:
        self.elements["button"] = create_element(
            "button", class_name="chat-widget-button", aria_label="Toggle Chat Window", html=_CHAT_ICON)
        panel = create_element("div", class_name="chat-widget-panel")
        panel.append_child(self._create_header())
        panel.append_child(self._create_messages_container())
        panel.append_child(self._create_input_area())
        self.elements["panel"] = panel

    def _create_header(self) -> Element:
        header = create_element("div", class_name="chat-widget-header")

        avatar = header.append_child(create_element("div", class_name="chat-widget-header-avatar"))
        if self.config.logo_url:
            avatar.append_child(create_element("img", src=self.config.logo_url, alt="Logo"))

        title = header.append_child(create_element("div", class_name="chat-widget-header-title"))
        title.append_child(create_element("h3", text=self.config.company_name))
        title.append_child(create_element("span", text="Online"))

        self.elements["close"] = header.append_child(create_element(
            "button", class_name="chat-widget-close-btn", html="&times;", aria_label="Close Chat"))
        return header

    def _create_messages_container(self) -> Element:
        messages = create_element("div", class_name="chat-widget-messages")
        # Replaying history must not append to it again
        for msg in self.state.history:
            self.renderer.render(msg.sender, msg.text, messages)
        self.elements["messages"] = messages
        return messages

    def _create_input_area(self) -> Element:
        area = create_element("div", class_name="chat-widget-input-area")
        self.elements["input"] = area.append_child(
            create_element("input", type="text", placeholder="Type a message...", value=""))
        self.elements["send"] = area.append_child(
            create_element("button", aria_label="Send Message", html=_SEND_ICON))
        return area

    def _attach_event_listeners(self) -> None:
        self.elements["button"].add_event_listener("click", lambda _e: self.toggle())
        self.elements["close"].add_event_listener("click", lambda _e: self.close())
        self.elements["send"].add_event_listener("click", lambda _e: self.handle_send_message())
        self.elements["input"].add_event_listener("keydown", self._on_keydown)

    def _on_keydown(self, event: Event):
        if event.key == "Enter":
            return self.handle_send_message()
        return None

    # ── open / close ────────────────────────────────────────
    def toggle(self) -> None:
        if self.state.is_open:
            self.close()
        else:
            self.open()

    def open(self) -> None:
        self._set_open(True)

    def close(self) -> None:
        self._set_open(False)

    def _set_open(self, is_open: bool) -> None:
        for name in ("panel", "button"):
            el = self.elements.get(name)
            if el is None:
                continue
            if is_open:
                el.add_class("open")
            else:
                el.remove_class("open")
        self.state.is_open = is_open
        self.store.save(self.state)
        smart_log.widget_event(self.session_id, "open" if is_open else "close")

    # ── sending ─────────────────────────────────────────────
    async def submit(self, text: str) -> None:
        """Type `text` into the input and send it."""
        if "input" in self.elements:
            self.elements["input"].value = text
        await self.handle_send_message()

    async def handle_send_message(self) -> None:
        input_el = self.elements.get("input")
        if input_el is None:
            return
        text = input_el.value
        # A send while a request is outstanding is dropped, not queued
        if not text.strip() or self.is_thinking:
            return

        self.add_message(Sender.USER, text)
        input_el.value = ""
        await self.send_to_webhook(text)

    async def send_to_webhook(self, text: str) -> None:
        if not self.config.api_url or self.client is None:
            log.error("CHAT_NOT_CONFIGURED | api_url is not configured")
            self.add_message(Sender.ASSISTANT, CONFIG_ERROR_MESSAGE)
            return

        self.is_thinking = True
        self.show_typing_indicator()
        started = time.monotonic()
        reply: Union[str, List[Segment]] = GENERIC_ERROR_MESSAGE
        try:
            smart_log.message_sent(self.session_id, text)
            smart_log.api_call(self.session_id, "webhook", "send")
            data = await self.client.send(text, self.session_id)
            smart_log.api_call(self.session_id, "webhook", "send", status="success")
            reply = normalize(data)
            smart_log.reply_received(self.session_id, [s.kind.value for s in reply],
                                     time.monotonic() - started)
        except TransportError as e:
            smart_log.api_call(self.session_id, "webhook", "send", status="failed")
            smart_log.error_occurred(self.session_id, type(e).__name__, "send_to_webhook", str(e))
        except Exception as e:  # noqa: BLE001
            log.error(f"CHAT_UNEXPECTED_ERROR | session={self.session_id} | error={e}", exc_info=True)
        finally:
            self.is_thinking = False
            self.hide_typing_indicator()

        self.add_message(Sender.ASSISTANT, reply)

    # ── messages ────────────────────────────────────────────
    def add_message(self, sender: Sender, payload: Any) -> None:
        messages = self.elements.get("messages")
        if messages is not None:
            self.renderer.render(sender, payload, messages)

        if sender == Sender.INDICATOR:
            return
        if isinstance(payload, list) and payload and all(isinstance(s, Segment) for s in payload):
            payload = to_history(payload)
        self.state.history.append(Message(sender, payload))
        self.store.save(self.state)

    def show_typing_indicator(self) -> None:
        messages = self.elements.get("messages")
        if messages is None:
            return
        messages.append_child(create_element(
            "div", class_name="chat-widget-message assistant typing-indicator",
            html="<span></span><span></span><span></span>"))
        messages.scroll_to_end()

    def hide_typing_indicator(self) -> None:
        panel = self.elements.get("panel")
        indicator = panel.query_selector(".typing-indicator") if panel is not None else None
        if indicator is not None:
            indicator.remove()

    # ── presentation ────────────────────────────────────────
    def apply_theme(self) -> None:
        self.document.set_root_property("--chat-widget-primary-color", self.config.primary_color)

    def restore_ui_state(self) -> None:
        if self.state.is_open:
            self.elements["panel"].add_class("open")
            self.elements["button"].add_class("open")
        self.elements["messages"].scroll_to_end()

    def render_html(self) -> str:
        return str(self.document.to_html())


def init_widget(
    config: Union[WidgetConfig, Mapping[str, Any], None] = None,
    *,
    storage: TabStorage,
    previous: Optional[ChatWidget] = None,
    **deps: Any,
) -> ChatWidget:
    """Create and mount a widget, tearing down `previous` first."""
    if previous is not None:
        previous.destroy()
    return ChatWidget(config, storage=storage, **deps).init()
