# chat_widget/routes/__init__.py
"""
Blueprints for the widget service.

Shared objects (`cfg`, `tab_storage`) are stored on `app.extensions` by the
app factory so route modules can reach them via `current_app`.
"""

from __future__ import annotations

from flask import Flask

from .chat import bp as chat_bp
from .chat_ui import bp as chat_ui_bp
from .health import bp as health_bp
from .reset import bp as reset_bp

BLUEPRINTS = (chat_bp, chat_ui_bp, health_bp, reset_bp)


def register_routes(app: Flask) -> None:
    for bp in BLUEPRINTS:
        app.register_blueprint(bp)
