#!/usr/bin/env python3
"""
Chat Widget Service Entry Point
- Works under both Gunicorn (WSGI import) and python CLI.
- Ensures smart logging is initialized exactly once per process.
- Aligns Flask app logger with root logger for consistent output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Tuple

from dotenv import load_dotenv
from flask import request

# Load env before any other imports that might read it
load_dotenv()

from chat_widget import create_app  # noqa: E402
from chat_widget.utils.smart_logger import LogLevel, configure_logging, resolve_level  # noqa: E402

_LOGGING_INITIALIZED = False  # process-level guard


def _to_python_level(level: LogLevel) -> int:
    mapping = {
        "MINIMAL": logging.WARNING,
        "STANDARD": logging.INFO,
        "DETAILED": logging.DEBUG,
        "DEBUG": logging.DEBUG,
    }
    return mapping.get(level.name, logging.INFO)


def setup_smart_logging() -> LogLevel:
    """
    Configure the smart logging system from WIDGET_LOG_LEVEL.
    Idempotent: won't add duplicate handlers if called multiple times.
    """
    global _LOGGING_INITIALIZED

    desired = os.getenv("WIDGET_LOG_LEVEL", "STANDARD").upper()
    if desired not in LogLevel.__members__:
        print(f"Warning: Invalid WIDGET_LOG_LEVEL '{desired}'. "
              f"Valid options: {', '.join(sorted(LogLevel.__members__))}")
    log_level = resolve_level(desired)

    if not _LOGGING_INITIALIZED:
        root = logging.getLogger()
        if not root.handlers:
            configure_logging(
                level=log_level,
                format_string="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                silence_external=True,
            )
        _LOGGING_INITIALIZED = True

    return log_level


def validate_environment(strict: bool) -> None:
    """
    Validate critical env vars.
    - If strict=True: exit on missing vars (CLI path).
    - If strict=False: log a warning (WSGI path) so the health route still comes up.
    """
    missing = []
    if not (os.getenv("WEBHOOK_URL") or os.getenv("N8N_WEBHOOK_URL")):
        missing.append("WEBHOOK_URL (required for the chat proxy)")
    if os.getenv("STORAGE_BACKEND", "memory").lower() == "redis" and not os.getenv("REDIS_HOST"):
        missing.append("REDIS_HOST (required for STORAGE_BACKEND=redis)")

    if missing:
        msg = "Missing required environment variables: " + ", ".join(missing)
        if strict:
            print("Error:", msg)
            sys.exit(1)
        else:
            logging.getLogger(__name__).warning(msg)


def _wire_app_logger(app, log_level: LogLevel) -> None:
    """Make Flask's app.logger flow into the root logger configured by smart logging."""
    if app.logger.handlers:
        app.logger.handlers.clear()
    app.logger.propagate = True
    app.logger.setLevel(_to_python_level(log_level))


def create_application(strict_env: bool = False):
    validate_environment(strict=strict_env)
    app = create_app()

    log_level = setup_smart_logging()
    _wire_app_logger(app, log_level)

    @app.before_request
    def _log_request():
        app.logger.info("→ %s %s", request.method, request.path)

    return app


def _resolve_server_config() -> Tuple[str, int, bool]:
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8080"))

    flask_debug = os.getenv("FLASK_DEBUG", "").lower()
    if flask_debug in ("1", "true", "yes", "on"):
        debug = True
    elif flask_debug in ("0", "false", "no", "off"):
        debug = False
    else:
        debug = os.getenv("APP_ENV", "development").lower() == "development"

    return host, port, debug


def _print_startup_info(host: str, port: int, debug: bool, log_level: LogLevel) -> None:
    print("Chat Widget Service Starting")
    print("=" * 60)
    print(f"Server:       http://{host}:{port}")
    print(f"Chat proxy:   http://{host}:{port}/api/chat")
    print(f"Preview:      http://{host}:{port}/chat/ui")
    print(f"Health check: http://{host}:{port}/health")
    print(f"Environment:  {os.getenv('APP_ENV', 'development')}")
    print(f"Storage:      {os.getenv('STORAGE_BACKEND', 'memory')}")
    print(f"Debug mode:   {debug}")
    print(f"Log level:    {log_level.name}")
    print(f"Process ID:   {os.getpid()}")
    print("=" * 60)


def main() -> None:
    log_level = setup_smart_logging()
    app = create_application(strict_env=True)

    host, port, debug = _resolve_server_config()
    _print_startup_info(host, port, debug, log_level)

    try:
        app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")


if __name__ == "__main__":
    main()
else:
    # WSGI entrypoint for Gunicorn: `gunicorn run:app`
    setup_smart_logging()
    app = create_application(strict_env=False)
