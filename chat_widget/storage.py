"""
Tab-scoped key-value storage.

A widget instance only ever talks to one `TabStorage`: reads and writes are
synchronous and whole-value (no partial updates), so the last write wins.
`MemoryStorage` keeps one dict per tab in-process; `RedisStorage` (see
redis_manager.py) namespaces keys by tab id and expires them with a TTL,
which stands in for the end of the browser tab. The in-memory registry
caps the number of tabs instead.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Dict, Optional, Protocol

log = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Backend could not complete a read or write."""


class TabStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage; one instance per tab."""

    def __init__(self, initial: Optional[Dict[str, str]] = None, *,
                 on_first_write: Optional[Callable[["MemoryStorage"], None]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self._on_first_write = on_first_write

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._on_first_write is not None:
            hook, self._on_first_write = self._on_first_write, None
            hook(self)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class MemoryStorageRegistry:
    """
    Hands out one MemoryStorage per tab id.

    A tab is only registered once something is written to it, so read-only
    visits leave nothing behind. At most `max_tabs` tabs are kept; the least
    recently used one is evicted first.
    """

    def __init__(self, max_tabs: int = 1000):
        if max_tabs < 1:
            raise ValueError("max_tabs must be at least 1")
        self.max_tabs = max_tabs
        self._tabs: "OrderedDict[str, MemoryStorage]" = OrderedDict()
        self._lock = threading.Lock()

    def for_tab(self, tab_id: str) -> MemoryStorage:
        with self._lock:
            storage = self._tabs.get(tab_id)
            if storage is not None:
                self._tabs.move_to_end(tab_id)
                return storage
        return MemoryStorage(on_first_write=lambda s: self._register(tab_id, s))

    def _register(self, tab_id: str, storage: MemoryStorage) -> None:
        with self._lock:
            self._tabs[tab_id] = storage
            self._tabs.move_to_end(tab_id)
            while len(self._tabs) > self.max_tabs:
                evicted, _ = self._tabs.popitem(last=False)
                log.info(f"MEMORY_TAB_EVICTED | tab={evicted} | max_tabs={self.max_tabs}")
            log.debug(f"MEMORY_TAB_CREATED | tab={tab_id} | tabs={len(self._tabs)}")

    def drop_tab(self, tab_id: str) -> bool:
        with self._lock:
            return self._tabs.pop(tab_id, None) is not None

    def __len__(self) -> int:
        return len(self._tabs)

    def health_check(self) -> Dict[str, object]:
        return {"backend": "memory", "connection_healthy": True, "tabs": len(self._tabs),
                "max_tabs": self.max_tabs}
