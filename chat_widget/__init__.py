"""
Chat Widget Application Factory
===============================

Wires together:
- tab storage (in-memory or Redis, per STORAGE_BACKEND)
- the webhook proxy, health, reset and widget preview routes
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from .config import BaseConfig, get_config
from .enums import StorageBackend
from .redis_manager import RedisStorageRegistry
from .storage import MemoryStorageRegistry
from .utils.helpers import iso_now
from .widget import ChatWidget, init_widget

log = logging.getLogger(__name__)

__all__ = ["create_app", "ChatWidget", "init_widget"]


def _build_storage_registry(cfg: BaseConfig):
    backend = cfg.STORAGE_BACKEND
    if backend == StorageBackend.REDIS.value:
        log.info("INIT_STORAGE | starting Redis connection")
        registry = RedisStorageRegistry(ttl_seconds=cfg.REDIS_TTL_SECONDS)
        health = registry.health_check()
        if not health.get("ping_success"):
            log.error(f"INIT_STORAGE_FAILED | health={health}")
            raise RuntimeError(f"Redis connection failed: {health.get('error')}")
        log.info("INIT_STORAGE_SUCCESS | backend=redis")
        return registry

    if backend != StorageBackend.MEMORY.value:
        log.warning(f"INIT_STORAGE | unknown STORAGE_BACKEND={backend!r}, using memory")
    log.info(f"INIT_STORAGE_SUCCESS | backend=memory | max_tabs={cfg.MEMORY_MAX_TABS}")
    return MemoryStorageRegistry(max_tabs=cfg.MEMORY_MAX_TABS)


def create_app(cfg: Optional[BaseConfig] = None, *, tab_storage=None) -> Flask:
    """
    App factory.

    Args:
        cfg: configuration object; defaults to get_config() (APP_ENV driven)
        tab_storage: registry handing out per-tab storage; built from cfg when omitted
    """
    cfg = cfg or get_config()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = cfg.SECRET_KEY
    app.config["TESTING"] = bool(getattr(cfg, "TESTING", False))

    allowed_origins = [o.strip() for o in cfg.CORS_ALLOW_ORIGINS.split(",") if o.strip()] or ["*"]
    CORS(
        app,
        resources={r"/api/*": {
            "origins": allowed_origins,
            "methods": ["POST", "OPTIONS"],
            "allow_headers": ["Content-Type"],
        }},
        supports_credentials=False,
    )

    app.extensions["cfg"] = cfg
    app.extensions["tab_storage"] = tab_storage if tab_storage is not None else _build_storage_registry(cfg)

    from .routes import register_routes
    register_routes(app)
    log.info("REGISTER_ROUTES_SUCCESS | /api/chat, /health, /chat/ui, /chat/reset")

    @app.errorhandler(500)
    def handle_internal_error(error):
        log.error(f"INTERNAL_ERROR | error={error}", exc_info=True)
        return {
            "error": "Internal server error",
            "timestamp": iso_now(),
            "details": str(error) if app.debug else "Contact support",
        }, 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return {
            "error": "Endpoint not found",
            "timestamp": iso_now(),
        }, 404

    log.info(f"APP_INIT_COMPLETE | config={type(cfg).__name__} | webhook_configured={bool(cfg.WEBHOOK_URL)}")
    return app
