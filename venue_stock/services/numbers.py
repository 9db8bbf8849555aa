from __future__ import annotations

import math
from decimal import Decimal
from typing import Any


def to_number(value: Any) -> float:
    """
    Conversion façon Number(...) :
    - None -> nan, bool -> 0/1, "" -> 0, chaîne non numérique -> nan
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def finite_or_none(value: Any) -> float | None:
    """Nombre fini ou None (absent)."""
    number = to_number(value)
    if math.isfinite(number):
        return number
    return None


def finite_or(value: Any, default: float = 0.0) -> float:
    number = finite_or_none(value)
    return default if number is None else number


def positive_int_or_none(value: Any) -> int | None:
    """Floor entier strictement positif, sinon None (ignoré)."""
    number = finite_or_none(value)
    if number is None:
        return None
    floored = math.floor(number)
    return floored if floored > 0 else None
