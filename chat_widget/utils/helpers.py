"""
Utility helpers
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Dict, Optional

_PRICE_RGX = re.compile(r"-?\d+(?:\.\d+)?")


def parse_price(raw: Any) -> Optional[float]:
    """Leading number of a price value ("15.00", "1,299.00 EUR", 12); None if absent."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    m = _PRICE_RGX.search(str(raw).replace(",", ""))
    return float(m.group()) if m else None


def compact_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def first_text(d: Dict[str, Any], *keys: str) -> Optional[str]:
    """First non-empty value among keys, as a string."""
    for key in keys:
        value = d.get(key)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value)
        if text:
            return text
    return None


def iso_now() -> str:
    return datetime.now().isoformat()
