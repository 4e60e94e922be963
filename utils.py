"""
Utility functions for GroupSplitLedger
"""
from __future__ import annotations
import math
import os
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id() -> str:
    """Get a new unique identifier"""
    return uuid.uuid4().hex


def now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def parse_datetime(s: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC"""
    value = datetime.fromisoformat(s.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def safe_float(x, default: Optional[float] = 0.0) -> Optional[float]:
    """Convert to a finite float, returning default on error"""
    try:
        value = float(x)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return value


def format_currency(amount: float, symbol: str = "¥") -> str:
    """Format an amount with two decimals and a currency symbol"""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):.2f}"


def app_dir() -> str:
    """
    Get application data directory: ~/.local/share/GroupSplitLedger
    (or $XDG_DATA_HOME). Creates directory if it doesn't exist.
    """
    base = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
    path = os.path.join(base, "GroupSplitLedger")
    os.makedirs(path, exist_ok=True)
    return path
