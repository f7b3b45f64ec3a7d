"""
Redis-backed tab storage.

Each tab gets its own key namespace (`tab:<tab_id>:<key>`) and every write
refreshes the TTL, so an abandoned tab's state expires on its own. Transient
connection errors are retried with a short backoff; anything else surfaces
as StorageError for the session store to handle.
"""
from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Dict, Optional

import redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from .config import BaseConfig, get_config
from .storage import StorageError

log = logging.getLogger(__name__)


def build_redis_client(cfg: Optional[BaseConfig] = None) -> redis.Redis:
    cfg = cfg or get_config()
    return redis.Redis(
        host=cfg.REDIS_HOST,
        port=cfg.REDIS_PORT,
        db=cfg.REDIS_DB,
        decode_responses=cfg.REDIS_DECODE_RESPONSES,
        socket_timeout=10,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )


class RedisStorage:
    """TabStorage for one tab, keyed under tab:<tab_id>:."""

    def __init__(self, tab_id: str, client: redis.Redis | None = None, *,
                 ttl_seconds: Optional[int] = None, max_retries: int = 3):
        if not tab_id:
            raise ValueError("tab_id is required")
        cfg = get_config()
        self.tab_id = tab_id
        self.redis: redis.Redis = client if client is not None else build_redis_client(cfg)
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else cfg.REDIS_TTL_SECONDS)
        self.max_retries = max_retries

    def _key(self, key: str) -> str:
        return f"tab:{self.tab_id}:{key}"

    def get_item(self, key: str) -> Optional[str]:
        full_key = self._key(key)
        for attempt in range(self.max_retries):
            try:
                raw = self.redis.get(full_key)
                if raw is None:
                    log.debug(f"REDIS_GET_NONE | key={full_key} | attempt={attempt + 1}")
                    return None
                if isinstance(raw, bytes):
                    try:
                        raw = raw.decode("utf-8")
                    except UnicodeDecodeError as ue:
                        log.error(f"REDIS_GET_UNDECODABLE | key={full_key} | size={len(raw)} | error={ue}")
                        raise StorageError(f"value at {full_key} is not valid UTF-8") from ue
                log.debug(f"REDIS_GET_SUCCESS | key={full_key} | size={len(raw)} | attempt={attempt + 1}")
                return raw
            except (ConnectionError, TimeoutError) as ce:
                log.warning(f"REDIS_GET_CONNECTION_ERROR | key={full_key} | attempt={attempt + 1} | error={ce}")
                if attempt == self.max_retries - 1:
                    raise StorageError(f"redis get failed for {full_key}: {ce}") from ce
                time.sleep(0.1 * (attempt + 1))
            except RedisError as re:
                log.error(f"REDIS_GET_ERROR | key={full_key} | attempt={attempt + 1} | error={re}")
                raise StorageError(f"redis get failed for {full_key}: {re}") from re
        return None

    def set_item(self, key: str, value: str) -> None:
        full_key = self._key(key)
        for attempt in range(self.max_retries):
            try:
                self.redis.setex(full_key, int(self.ttl.total_seconds()), value)
                log.debug(f"REDIS_SET_SUCCESS | key={full_key} | size={len(value)} | ttl={self.ttl} | attempt={attempt + 1}")
                return
            except (ConnectionError, TimeoutError) as ce:
                log.warning(f"REDIS_SET_CONNECTION_ERROR | key={full_key} | attempt={attempt + 1} | error={ce}")
                if attempt == self.max_retries - 1:
                    raise StorageError(f"redis set failed for {full_key}: {ce}") from ce
                time.sleep(0.1 * (attempt + 1))
            except RedisError as re:
                log.error(f"REDIS_SET_ERROR | key={full_key} | attempt={attempt + 1} | error={re}")
                raise StorageError(f"redis set failed for {full_key}: {re}") from re

    def remove_item(self, key: str) -> None:
        full_key = self._key(key)
        try:
            self.redis.delete(full_key)
            log.info(f"REDIS_KEY_DELETED | key={full_key}")
        except RedisError as re:
            log.error(f"REDIS_DELETE_ERROR | key={full_key} | error={re}")
            raise StorageError(f"redis delete failed for {full_key}: {re}") from re


class RedisStorageRegistry:
    """Hands out RedisStorage views sharing one client."""

    def __init__(self, client: redis.Redis | None = None, *, ttl_seconds: Optional[int] = None):
        self.redis: redis.Redis = client if client is not None else build_redis_client()
        self.ttl_seconds = ttl_seconds

    def for_tab(self, tab_id: str) -> RedisStorage:
        return RedisStorage(tab_id, self.redis, ttl_seconds=self.ttl_seconds)

    def drop_tab(self, tab_id: str) -> bool:
        try:
            keys = list(self.redis.scan_iter(match=f"tab:{tab_id}:*"))
            if keys:
                self.redis.delete(*keys)
            log.info(f"TAB_DELETED | tab={tab_id} | keys={len(keys)}")
            return bool(keys)
        except RedisError as e:
            log.error(f"TAB_DELETE_ERROR | tab={tab_id} | error={e}", exc_info=True)
            return False

    def health_check(self) -> Dict[str, Any]:
        health: Dict[str, Any] = {"backend": "redis", "connection_healthy": False}
        try:
            health["ping_success"] = bool(self.redis.ping())
            health["connection_healthy"] = health["ping_success"]
        except RedisError as e:
            health["ping_success"] = False
            health["error"] = str(e)
        return health
