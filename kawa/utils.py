from __future__ import annotations

from datetime import datetime, date, timezone
from typing import Optional

from kawa.errors import ValidationError


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def pct(n: float, d: float) -> float:
    return safe_div(n, d) * 100.0


def format_pct(value: float, precision: int = 2) -> str:
    return f"{float(value):.{precision}f}%"


def money(value, field: str, *, required: bool = False) -> Optional[int]:
    """
    Coerce a monetary input to a whole-currency int.
    None passes through unless the field is required.
    """
    if value is None:
        if required:
            raise ValidationError(f"{field} is required.")
        return None
    try:
        amount = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be a number.")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0.")
    return amount


def parse_date(value, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field} is required.")
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD).")


def parse_ts(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
