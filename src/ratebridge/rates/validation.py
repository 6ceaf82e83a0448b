"""Caller input checks, run before any provider is contacted."""

from __future__ import annotations

import math
import re
from typing import Any

from ratebridge.core.exceptions import ValidationError

_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{2,15}$")

MIN_HISTORY_DAYS = 1
MAX_HISTORY_DAYS = 365


def validate_code(value: Any, field: str = "code") -> str:
    """Return ``value`` upper-cased, or raise if it is not a plausible ticker."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", context={"field": field, "value": value})
    code = value.strip().upper()
    if not _CODE_PATTERN.match(code):
        raise ValidationError(
            f"{field} must be 2-15 letters or digits, got {value!r}",
            context={"field": field, "value": value},
        )
    return code


def validate_amount(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("amount must be a number", context={"field": "amount", "value": value})
    try:
        amount = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            "amount must be a number", context={"field": "amount", "value": value}
        ) from e
    if math.isnan(amount) or math.isinf(amount) or amount <= 0:
        raise ValidationError(
            "amount must be a positive number", context={"field": "amount", "value": value}
        )
    return amount


def validate_days(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("days must be an integer", context={"field": "days", "value": value})
    if not MIN_HISTORY_DAYS <= value <= MAX_HISTORY_DAYS:
        raise ValidationError(
            f"days must be between {MIN_HISTORY_DAYS} and {MAX_HISTORY_DAYS}",
            context={"field": "days", "value": value},
        )
    return value
