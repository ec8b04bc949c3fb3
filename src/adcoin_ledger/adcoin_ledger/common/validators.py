from __future__ import annotations

import re
from typing import Any, Optional

from ..core.constants import MAX_AMOUNT
from ..core.exceptions import ValidationError

_WHOLE_NUMBER = re.compile(r"-?[0-9]+")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; "true" is never a valid amount.
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _WHOLE_NUMBER.fullmatch(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{field_name} must be a whole number")


def _require_in_range(number: int, field_name: str) -> int:
    if abs(number) > MAX_AMOUNT:
        raise ValidationError(f"{field_name} must not exceed {MAX_AMOUNT}")
    return number


def require_positive_int(value: Any, field_name: str) -> int:
    number = require_int(value, field_name)
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return _require_in_range(number, field_name)


def require_non_zero_int(value: Any, field_name: str) -> int:
    number = require_int(value, field_name)
    if number == 0:
        raise ValidationError(f"{field_name} must not be 0")
    return _require_in_range(number, field_name)


def clean_optional_text(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    return text or None


def clamp_limit(value: Any, *, default: int, maximum: int) -> int:
    if value is None or value == "":
        return default
    limit = require_positive_int(value, "Limit")
    return min(limit, maximum)
