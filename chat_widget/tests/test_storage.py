from __future__ import annotations

from chat_widget.storage import MemoryStorage, MemoryStorageRegistry


def test_memory_storage_basics():
    s = MemoryStorage({"a": "1"})
    assert s.get_item("a") == "1"
    s.set_item("b", "2")
    s.remove_item("a")
    s.remove_item("missing")
    assert s.get_item("a") is None
    assert len(s) == 1


def test_tab_registered_on_first_write():
    registry = MemoryStorageRegistry()
    view = registry.for_tab("t1")
    assert view.get_item("k") is None
    assert len(registry) == 0

    view.set_item("k", "v")
    assert len(registry) == 1
    assert registry.for_tab("t1") is view
    assert registry.for_tab("t1").get_item("k") == "v"


def test_tabs_are_isolated():
    registry = MemoryStorageRegistry()
    registry.for_tab("a").set_item("k", "from a")
    registry.for_tab("b").set_item("k", "from b")
    assert registry.for_tab("a").get_item("k") == "from a"
    assert registry.for_tab("b").get_item("k") == "from b"


def test_least_recently_used_tab_is_evicted():
    registry = MemoryStorageRegistry(max_tabs=2)
    registry.for_tab("a").set_item("k", "1")
    registry.for_tab("b").set_item("k", "2")
    # Touch "a" so "b" becomes the oldest
    registry.for_tab("a")
    registry.for_tab("c").set_item("k", "3")

    assert len(registry) == 2
    assert registry.for_tab("a").get_item("k") == "1"
    assert registry.for_tab("b").get_item("k") is None
    assert registry.for_tab("c").get_item("k") == "3"


def test_drop_tab_and_health():
    registry = MemoryStorageRegistry(max_tabs=5)
    registry.for_tab("a").set_item("k", "1")
    assert registry.drop_tab("a") is True
    assert registry.drop_tab("a") is False
    assert registry.health_check() == {"backend": "memory", "connection_healthy": True, "tabs": 0, "max_tabs": 5}
