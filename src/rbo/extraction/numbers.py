from __future__ import annotations

import math
import re
from typing import Optional

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def int_prefix(raw: object, default: int = 0) -> int:
    """Leading integer of a cell ("12 un" -> 12, "2.5" -> 2)."""
    if raw is None:
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        return int(raw) if math.isfinite(raw) else default
    m = _INT_PREFIX.match(str(raw))
    return int(m.group(1)) if m else default


def float_prefix(raw: object, default: float = 0.0) -> float:
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        m = _FLOAT_PREFIX.match(str(raw))
        if not m:
            return default
        value = float(m.group(1))
    # "1e400" overflows to inf
    return value if math.isfinite(value) else default


def parse_grouped(raw: Optional[str]) -> Optional[int]:
    """Thousands grouped with dots and no decimals: "12.345" -> 12345."""
    if raw is None:
        return None
    digits = raw.replace(".", "").strip()
    if not digits.isdigit():
        return None
    return int(digits)


def decode_text(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # SII documents and most local exports are latin-1
        return data.decode("latin-1")
