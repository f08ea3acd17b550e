from __future__ import annotations

import math
from datetime import datetime, date, timezone

from stockroom.errors import ValidationError


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def normalize_key(value: str | None) -> str:
    return str(value or "").strip().lower()


def display_name(name: str, size: str | None) -> str:
    # "Lavender Honey" + "Big" -> "Lavender Honey (Big)"
    size = str(size or "").strip()
    return f"{name} ({size})" if size else str(name)


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def whole_number(value, field: str) -> int:
    """int(value), rejecting fractions, NaN/inf and non-numbers with a ValidationError on `field`."""
    try:
        n = int(value)
        exact = n == float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{_label(field)} must be a whole number.", field=field)
    if not exact:
        raise ValidationError(f"{_label(field)} must be a whole number.", field=field)
    return n


def finite_number(value, field: str) -> float:
    """float(value), rejecting NaN, inf and non-numbers with a ValidationError on `field`."""
    try:
        v = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{_label(field)} must be a number.", field=field)
    if not math.isfinite(v):
        raise ValidationError(f"{_label(field)} must be a finite number.", field=field)
    return v
