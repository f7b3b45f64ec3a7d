# chat_widget/utils/smart_logger.py
"""
Smart, modular logging for the chat widget.
Provides clean, contextual logs with configurable verbosity levels.
"""

import logging
import os
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    MINIMAL = 1      # Only critical flow events
    STANDARD = 2     # Key decisions and state changes
    DETAILED = 3     # Include sizes, carousel moves and timing
    DEBUG = 4        # Everything including API calls


class SmartLogger:
    def __init__(self, name: str, level: LogLevel = LogLevel.STANDARD):
        self.logger = logging.getLogger(name)
        self.level = level
        self._request_contexts: Dict[str, str] = {}

    def set_level(self, level: LogLevel):
        """Change logging verbosity at runtime"""
        self.level = level

    def _should_log(self, required_level: LogLevel) -> bool:
        return self.level.value >= required_level.value

    def _format_request_id(self, session_id: str) -> str:
        timestamp = datetime.now().strftime('%H%M%S')
        return f"{session_id[-6:]}_{timestamp}"

    def _clean_log(self, level: str, emoji: str, category: str, message: str, **kwargs):
        details = " | ".join([f"{k}={v}" for k, v in kwargs.items() if v is not None])
        if details:
            full_message = f"{emoji} {category} | {message} | {details}"
        else:
            full_message = f"{emoji} {category} | {message}"

        getattr(self.logger, level.lower())(full_message)

    # ═══════════════════════════════════════════════════════════
    # HIGH-LEVEL FLOW EVENTS
    # ═══════════════════════════════════════════════════════════

    def widget_event(self, session_id: str, event: str, **details: Any):
        """Lifecycle: init, open, close, destroy"""
        if not self._should_log(LogLevel.MINIMAL):
            return
        self._clean_log("info", "🪟", "WIDGET", event, session=session_id, **details)

    def message_sent(self, session_id: str, text: str):
        if not self._should_log(LogLevel.MINIMAL):
            return

        req_id = self._format_request_id(session_id)
        self._request_contexts[session_id] = req_id

        preview = text[:50] + "..." if len(text) > 50 else text
        self._clean_log("info", "🚀", "SEND", f"'{preview}'", req=req_id)

    def reply_received(self, session_id: str, segment_kinds: List[str], elapsed_time: Optional[float] = None):
        if not self._should_log(LogLevel.MINIMAL):
            return

        req_id = self._request_contexts.get(session_id, "unknown")
        extras: Dict[str, Any] = {"req": req_id, "segments": len(segment_kinds)}
        if elapsed_time is not None:
            extras["time"] = f"{elapsed_time:.3f}s"
        self._clean_log("info", "✅", "REPLY", ",".join(segment_kinds) or "empty", **extras)

        self._request_contexts.pop(session_id, None)

    def storage_operation(self, session_id: str, operation: str, details: Optional[Dict[str, Any]] = None):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("info", "💾", "STORAGE", operation, session=session_id, **(details or {}))

    # ═══════════════════════════════════════════════════════════
    # DETAILED EVENTS (Only at DETAILED level and above)
    # ═══════════════════════════════════════════════════════════

    def carousel_event(self, handle: str, event: str, index: Optional[int] = None, count: Optional[int] = None):
        if not self._should_log(LogLevel.DETAILED):
            return
        self._clean_log("debug", "🎠", "CAROUSEL", event, handle=handle, index=index, count=count)

    def error_occurred(self, session_id: str, error_type: str, operation: str, error_msg: Optional[str] = None):
        """Log errors with context"""
        # Errors are always logged regardless of level
        req_id = self._request_contexts.pop(session_id, "unknown")
        self._clean_log("error", "❌", "ERROR", f"{error_type} in {operation}",
                        session=session_id, req=req_id, msg=error_msg)

    def warning(self, session_id: str, warning_type: str, details: Optional[str] = None):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("warning", "⚠️", "WARNING", warning_type, session=session_id, details=details)

    # ═══════════════════════════════════════════════════════════
    # DEBUG EVENTS (Only at DEBUG level)
    # ═══════════════════════════════════════════════════════════

    def debug_state(self, session_id: str, state_name: str, state_data: Dict[str, Any]):
        """Log detailed state information"""
        if not self._should_log(LogLevel.DEBUG):
            return

        # Only show keys and counts, not full data
        summary = {k: len(v) if isinstance(v, (list, dict, str)) else str(v)[:20]
                   for k, v in state_data.items()}
        self._clean_log("debug", "🔍", "STATE", state_name, session=session_id, **summary)

    def api_call(self, session_id: str, service: str, operation: str, status: str = "started"):
        if not self._should_log(LogLevel.DEBUG):
            return

        req_id = self._request_contexts.get(session_id, "unknown")
        emoji = "📡" if status == "started" else "✅" if status == "success" else "❌"
        self._clean_log("debug", emoji, "API", f"{service}.{operation}",
                        req=req_id, status=status)


# ═══════════════════════════════════════════════════════════════════════════════
# GLOBAL LOGGER INSTANCES AND CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

_loggers: Dict[str, SmartLogger] = {}


def resolve_level(name: Optional[str] = None) -> LogLevel:
    """LogLevel from a name (or WIDGET_LOG_LEVEL); unknown names map to STANDARD."""
    raw = (name or os.getenv('WIDGET_LOG_LEVEL', 'STANDARD')).upper()
    return LogLevel.__members__.get(raw, LogLevel.STANDARD)


def get_smart_logger(module_name: str, level: Optional[LogLevel] = None) -> SmartLogger:
    """Get or create a smart logger for a module"""
    if module_name not in _loggers:
        _loggers[module_name] = SmartLogger(module_name, level or resolve_level())

    if level:
        _loggers[module_name].set_level(level)

    return _loggers[module_name]


def configure_logging(level: LogLevel = LogLevel.STANDARD,
                      format_string: Optional[str] = None,
                      silence_external: bool = True):
    """Configure the entire logging system"""
    if not format_string:
        format_string = '%(asctime)s | %(message)s'

    logging.basicConfig(
        level=logging.DEBUG if level.value >= LogLevel.DETAILED.value else logging.INFO,
        format=format_string,
        datefmt='%H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if silence_external:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
        logging.getLogger('asyncio').setLevel(logging.WARNING)

    for smart_logger in _loggers.values():
        smart_logger.set_level(level)
