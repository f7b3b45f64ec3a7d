# chat_widget/routes/chat.py
"""
POST /api/chat – forwards the widget's JSON body to the workflow webhook
and relays the webhook's JSON response unchanged.

Request body (from the widget):
{
  "message": "Do you have this in blue?",
  "user": {"sessionId": "6f1c..."}
}
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import requests
from flask import Blueprint, Response, current_app, jsonify, request

log = logging.getLogger(__name__)
bp = Blueprint("chat", __name__)

NOT_CONFIGURED_ERROR = "Webhook URL is not configured."
PROXY_ERROR = "An error occurred in the proxy server."


def reshape_for_webhook(body: Any, session_field: str) -> Any:
    """Copy user.sessionId to a top-level key when the workflow expects it there."""
    if not session_field or not isinstance(body, dict):
        return body
    user = body.get("user")
    if isinstance(user, dict) and user.get("sessionId"):
        return {**body, session_field: user["sessionId"]}
    return body


@bp.post("/api/chat")
def chat_proxy() -> tuple[Response, int]:
    cfg = current_app.extensions["cfg"]
    webhook_url = cfg.WEBHOOK_URL
    if not webhook_url:
        log.error("PROXY_NOT_CONFIGURED | WEBHOOK_URL is empty")
        return jsonify({"error": NOT_CONFIGURED_ERROR}), 500

    body = request.get_json(silent=True)
    if body is None:
        if request.get_data():
            log.warning("PROXY_BAD_JSON | body is not valid JSON")
            return jsonify({"error": "Invalid JSON format"}), 400
        body = {}

    forwarded = reshape_for_webhook(body, cfg.WEBHOOK_SESSION_FIELD)
    session_id = (body.get("user") or {}).get("sessionId") if isinstance(body, dict) else None
    log.info(f"PROXY_FORWARD | session={session_id} | keys={list(forwarded) if isinstance(forwarded, dict) else '-'}")

    try:
        response = requests.post(
            webhook_url,
            json=forwarded,
            headers={"Content-Type": "application/json"},
            timeout=cfg.WEBHOOK_TIMEOUT_SECONDS,
        )
        if not response.ok:
            raise requests.HTTPError(f"workflow responded with status: {response.status_code}", response=response)
        data: Dict[str, Any] | Any = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        log.error(f"PROXY_ERROR | session={session_id} | error={e}", exc_info=True)
        return jsonify({"error": PROXY_ERROR}), 500

    log.info(f"PROXY_RELAY | session={session_id} | status={response.status_code} | type={type(data).__name__}")
    return jsonify(data), 200
