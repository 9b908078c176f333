# Overview: Input validation helpers shared by routes and services.

from __future__ import annotations

import math
from typing import Any


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


def _finite_float(value: Any, message: str) -> float:
    try:
        number = float(value)
    except (ValueError, OverflowError):
        raise ValidationError(message)
    # "inf", "nan" and 1e400 all parse as floats but have no integer value
    if math.isinf(number) or math.isnan(number):
        raise ValidationError(message)
    return number


def to_int(value: Any) -> int | None:
    """
    Lenient integer coercion for JSON/CSV-sourced values.

    "3", 3 and 3.0 all become 3; blank becomes None; anything unparseable
    or non-finite raises ValidationError.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(_finite_float(value, f"Not a number: {value}"))
    text = str(value).strip()
    if not text:
        return None
    return int(_finite_float(text, f"Not a number: {text}"))


def to_cents(value: Any) -> int | None:
    """Currency units (12.5, "$12.50") -> integer cents."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("price must be a number")
    if isinstance(value, int):
        cents = value * 100
    else:
        if isinstance(value, float):
            amount = _finite_float(value, f"Invalid price: {value}")
        else:
            text = str(value).strip().replace("$", "").replace(",", "")
            if not text:
                return None
            amount = _finite_float(text, f"Invalid price: {value}")
        if abs(amount) * 100 > MAX_PRICE_CENTS:
            raise ValidationError(f"price cannot exceed ${MAX_PRICE_CENTS / 100:,.2f}")
        cents = int(round(amount * 100))
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"price cannot exceed ${MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def to_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
