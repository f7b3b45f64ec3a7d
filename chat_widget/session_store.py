"""
Session state persistence for one widget instance.

State is a single JSON entry in tab-scoped storage. Loading never raises:
missing state yields a fresh session, corrupt state is discarded and
replaced by a fresh session.
"""
from __future__ import annotations

import json
import logging
import uuid

from .enums import Sender
from .models import Message, SessionState
from .storage import StorageError, TabStorage
from .utils.helpers import compact_json
from .utils.smart_logger import get_smart_logger

log = logging.getLogger(__name__)
smart_log = get_smart_logger("session_store")

SESSION_STATE_KEY = "chat_widget_session_state"


def generate_session_id() -> str:
    return str(uuid.uuid4())


class SessionStateStore:
    def __init__(self, storage: TabStorage, welcome_message: str, *, key: str = SESSION_STATE_KEY):
        self.storage = storage
        self.welcome_message = welcome_message
        self.key = key

    def fresh_state(self) -> SessionState:
        return SessionState(
            session_id=generate_session_id(),
            is_open=False,
            history=[Message(Sender.ASSISTANT, self.welcome_message)],
        )

    def load(self) -> SessionState:
        try:
            raw = self.storage.get_item(self.key)
        except StorageError as e:
            log.error(f"STATE_LOAD_ERROR | key={self.key} | error={e}")
            return self.fresh_state()

        if raw is None:
            state = self.fresh_state()
            smart_log.storage_operation(state.session_id, "fresh_session")
            return state

        try:
            state = SessionState.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, RecursionError) as e:
            smart_log.warning("-", "STATE_CORRUPT", f"key={self.key} size={len(raw)} error={e}")
            self._discard()
            return self.fresh_state()

        smart_log.storage_operation(state.session_id, "restored", {"messages": len(state.history), "open": state.is_open})
        return state

    def save(self, state: SessionState) -> bool:
        payload = compact_json(state.to_dict())
        try:
            self.storage.set_item(self.key, payload)
        except StorageError as e:
            smart_log.error_occurred(state.session_id, type(e).__name__, "save_state", str(e))
            return False
        smart_log.debug_state(state.session_id, "saved", {"history": state.history, "payload": payload})
        return True

    def clear(self) -> None:
        self._discard()

    def _discard(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except StorageError as e:
            log.error(f"STATE_DISCARD_ERROR | key={self.key} | error={e}")
