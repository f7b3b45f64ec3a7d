# chat_widget/utils/__init__.py
"""
Expose helpers at package-level for convenience:

    from chat_widget.utils import parse_price
"""

from .helpers import (  # noqa: F401
    compact_json,
    first_text,
    iso_now,
    parse_price,
)

__all__ = [
    "compact_json",
    "first_text",
    "iso_now",
    "parse_price",
]
