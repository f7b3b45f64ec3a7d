# chat_widget/routes/chat_ui.py
"""
GET /chat/ui – server-side snapshot of the widget as a given tab sees it.
"""

from __future__ import annotations

import uuid

from flask import Blueprint, Response, current_app, request, url_for

from ..config import WidgetConfig
from ..dom import Document
from ..widget import ChatWidget

bp = Blueprint("chat_ui", __name__)


@bp.route("/chat/ui", methods=["GET"])
def chat_ui() -> Response:
    cfg = current_app.extensions["cfg"]
    tab_id = (request.args.get("tab") or "").strip() or uuid.uuid4().hex
    storage = current_app.extensions["tab_storage"].for_tab(tab_id)

    widget_config = WidgetConfig.from_app_config(cfg, api_url=url_for("chat.chat_proxy", _external=True))
    document = Document(title=f"{widget_config.company_name} chat")
    widget = ChatWidget(widget_config, storage=storage, document=document).init()
    if request.args.get("open", "").lower() in {"1", "true", "yes", "on"} and not widget.state.is_open:
        widget.open()

    response = Response(widget.render_html(), mimetype="text/html; charset=utf-8")
    response.headers["X-Chat-Tab"] = tab_id
    return response
