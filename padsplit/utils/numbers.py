"""Numeric coercion helpers for scraped text and dashboard payloads."""

from __future__ import annotations

import math
from typing import Any


def parse_int(raw: str | None) -> int | None:
    """Parse an integer that may contain thousands separators ("1,234").

    Returns None when nothing but separators was captured.
    """
    if raw is None:
        return None
    digits = raw.replace(",", "").strip()
    if not digits.isdigit():
        return None
    return int(digits)


def round_half_up(value: Any) -> int | None:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2).

    Missing or non-numeric values give None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return math.floor(number + 0.5)


def fraction_to_percent(value: Any) -> int | None:
    """0.784 -> 78."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return round_half_up(float(value) * 100)
    except (TypeError, ValueError):
        return None
