from __future__ import annotations

import fnmatch
from typing import Dict, List

import pytest
from redis.exceptions import ConnectionError, ResponseError

from chat_widget import redis_manager
from chat_widget.redis_manager import RedisStorage, RedisStorageRegistry
from chat_widget.session_store import SESSION_STATE_KEY, SessionStateStore
from chat_widget.storage import StorageError


class FakeRedis:
    """The handful of redis.Redis calls the storage layer makes."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.ttls: Dict[str, int] = {}
        self.fail_next: List[Exception] = []
        self.ping_error: Exception | None = None

    def _maybe_fail(self):
        if self.fail_next:
            raise self.fail_next.pop(0)

    def get(self, key):
        self._maybe_fail()
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self._maybe_fail()
        self.data[key] = value.encode("utf-8")
        self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        self._maybe_fail()
        return sum(1 for k in keys if self.data.pop(k, None) is not None)

    def scan_iter(self, match=None):
        return [k for k in list(self.data) if match is None or fnmatch.fnmatch(k, match)]

    def ping(self):
        if self.ping_error is not None:
            raise self.ping_error
        return True


@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps: List[float] = []
    monkeypatch.setattr(redis_manager.time, "sleep", sleeps.append)
    return sleeps


def test_keys_are_scoped_per_tab(fake_redis):
    a = RedisStorage("tab-a", fake_redis, ttl_seconds=60)
    b = RedisStorage("tab-b", fake_redis, ttl_seconds=60)
    a.set_item("k", "one")
    b.set_item("k", "two")
    assert a.get_item("k") == "one"
    assert b.get_item("k") == "two"
    assert set(fake_redis.data) == {"tab:tab-a:k", "tab:tab-b:k"}
    assert fake_redis.ttls["tab:tab-a:k"] == 60


def test_missing_and_removed_keys(fake_redis):
    s = RedisStorage("t", fake_redis, ttl_seconds=60)
    assert s.get_item("absent") is None
    s.set_item("k", "v")
    s.remove_item("k")
    assert s.get_item("k") is None


def test_connection_errors_are_retried(fake_redis, no_sleep):
    s = RedisStorage("t", fake_redis, ttl_seconds=60)
    s.set_item("k", "v")
    fake_redis.fail_next = [ConnectionError("reset"), ConnectionError("reset")]
    assert s.get_item("k") == "v"
    assert no_sleep == [pytest.approx(0.1), pytest.approx(0.2)]


def test_persistent_connection_error_raises_storage_error(fake_redis):
    s = RedisStorage("t", fake_redis, ttl_seconds=60, max_retries=2)
    fake_redis.fail_next = [ConnectionError("down")] * 2
    with pytest.raises(StorageError):
        s.set_item("k", "v")


def test_other_redis_errors_are_not_retried(fake_redis, no_sleep):
    s = RedisStorage("t", fake_redis, ttl_seconds=60)
    fake_redis.fail_next = [ResponseError("WRONGTYPE")]
    with pytest.raises(StorageError):
        s.get_item("k")
    assert no_sleep == []


def test_session_store_survives_redis_outage(fake_redis):
    store = SessionStateStore(RedisStorage("t", fake_redis, ttl_seconds=60, max_retries=1), "Welcome")
    fake_redis.fail_next = [ConnectionError("down")]
    state = store.load()
    assert [m.text for m in state.history] == ["Welcome"]

    fake_redis.fail_next = [ConnectionError("down")]
    assert store.save(state) is False
    assert store.save(state) is True
    assert f"tab:t:{SESSION_STATE_KEY}" in fake_redis.data


def test_registry_drop_tab(fake_redis):
    registry = RedisStorageRegistry(fake_redis, ttl_seconds=60)
    registry.for_tab("a").set_item("x", "1")
    registry.for_tab("a").set_item("y", "2")
    registry.for_tab("b").set_item("x", "3")

    assert registry.drop_tab("a") is True
    assert set(fake_redis.data) == {"tab:b:x"}
    assert registry.drop_tab("a") is False


def test_registry_health(fake_redis):
    registry = RedisStorageRegistry(fake_redis, ttl_seconds=60)
    assert registry.health_check() == {"backend": "redis", "connection_healthy": True, "ping_success": True}

    fake_redis.ping_error = ConnectionError("down")
    health = registry.health_check()
    assert health["connection_healthy"] is False
    assert health["ping_success"] is False
    assert "down" in health["error"]


def test_tab_id_required(fake_redis):
    with pytest.raises(ValueError):
        RedisStorage("", fake_redis)


def test_undecodable_value_raises_storage_error(fake_redis, no_sleep):
    s = RedisStorage("t", fake_redis, ttl_seconds=60)
    fake_redis.data["tab:t:k"] = b"\xff\xfe{bad"
    with pytest.raises(StorageError):
        s.get_item("k")
    assert no_sleep == []


def test_session_store_replaces_undecodable_state(fake_redis):
    store = SessionStateStore(RedisStorage("t", fake_redis, ttl_seconds=60), "Welcome")
    fake_redis.data[f"tab:t:{SESSION_STATE_KEY}"] = b"\xff\xfe{bad"

    state = store.load()
    assert [m.text for m in state.history] == ["Welcome"]

    assert store.save(state) is True
    assert store.load().session_id == state.session_id
