"""
Helper Functions

This module contains utility functions used throughout the application.
"""

import math
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dateutil import parser as dtparser

_WHITESPACE = re.compile(r"\s+")


def now_ms() -> int:
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


def parse_ts(x: Any) -> Optional[datetime]:
    """Parse timestamp from various formats"""
    if not x:
        return None
    try:
        dt = dtparser.isoparse(str(x))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except Exception:
        return None


def to_epoch_ms(x: Any) -> Optional[int]:
    """Epoch milliseconds from a number or an ISO-8601 string"""
    if isinstance(x, bool):
        return None
    if isinstance(x, float) and not math.isfinite(x):
        return None
    if isinstance(x, (int, float)):
        return int(x)
    ms = safe_int(x)
    if ms is not None:
        return ms
    dt = parse_ts(x)
    return int(dt.timestamp() * 1000) if dt else None


def safe_int(x: Any) -> Optional[int]:
    """Safely convert to int"""
    try:
        return int(x) if x is not None else None
    except Exception:
        return None


def safe_float(x: Any) -> Optional[float]:
    """Safely convert to float"""
    try:
        return float(x) if x is not None else None
    except Exception:
        return None


def safe_str(x: Any) -> Optional[str]:
    """str() that never raises; None stays None"""
    if x is None:
        return None
    try:
        return str(x)
    except Exception:
        return None


def first_key(d: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-None value"""
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


def normalize_message(message: str) -> str:
    """Lowercase, trim and collapse whitespace"""
    return _WHITESPACE.sub(" ", message.strip().lower())
