# chat_widget/routes/health.py
"""
Simple readiness/liveness probe.

Returns HTTP 200 when the tab storage backend answers, 500 otherwise.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, jsonify

log = logging.getLogger(__name__)
bp = Blueprint("health", __name__)


@bp.get("/health")
def health_check() -> tuple[Response, int]:
    registry = current_app.extensions.get("tab_storage")
    if registry is None:
        return jsonify({"status": "unhealthy", "storage": "not_initialized", "service": "chat-widget"}), 500

    health = registry.health_check()
    cfg = current_app.extensions["cfg"]
    payload = {
        "status": "healthy" if health.get("connection_healthy") else "unhealthy",
        "storage": health.get("backend"),
        "webhook_configured": bool(cfg.WEBHOOK_URL),
        "service": "chat-widget",
    }
    if payload["status"] != "healthy":
        log.warning(f"HEALTH_DEGRADED | health={health}")
        return jsonify(payload), 500
    return jsonify(payload), 200
