# backend/app/domain/formatting.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

CURRENCY_SYMBOL = "₱"
NO_METHOD = "N/A"
NO_DATE = "No Date"


def format_amount(amount: float) -> str:
    """
    Peso amount with thousands separators and at most 3 fraction digits,
    trailing zeros dropped: 1500 -> "₱1,500", 1234.5 -> "₱1,234.5".
    """
    s = f"{float(amount):,.3f}".rstrip("0").rstrip(".")
    if s in ("-0", ""):
        s = "0"
    return f"{CURRENCY_SYMBOL}{s}"


def format_method(method: Optional[str]) -> str:
    return method or NO_METHOD


def format_date(ts: Optional[datetime]) -> str:
    # M/D/YYYY, UTC
    if ts is None:
        return NO_DATE
    d = ts.astimezone(timezone.utc) if ts.tzinfo else ts
    return f"{d.month}/{d.day}/{d.year}"


def role_badge(role: Optional[str]) -> str:
    return (role or "").upper()
