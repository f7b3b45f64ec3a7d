# chat_widget/routes/reset.py
"""
/chat/reset – drops the stored widget state of one tab so the next
preview starts a fresh session.

POST body:
{
  "tab": "abc123"
}
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify, request

log = logging.getLogger(__name__)
bp = Blueprint("reset", __name__)


@bp.post("/chat/reset")
def reset_tab() -> tuple[Response, int]:
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    tab_id = str(data.get("tab") or "").strip()
    if not tab_id:
        return jsonify({"error": "Missing tab"}), 400

    removed = current_app.extensions["tab_storage"].drop_tab(tab_id)
    log.info(f"TAB_RESET | tab={tab_id} | removed={removed}")
    return jsonify({"message": "Tab reset successfully", "removed": removed}), 200
