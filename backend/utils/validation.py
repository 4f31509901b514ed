"""Request payload coercion shared by the blueprints."""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional


class ValidationError(ValueError):
    """Invalid client input, rendered as a 400 response."""


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_number(
    data: Mapping[str, Any],
    field: str,
    *,
    integer: bool = False,
    minimum: Optional[float] = None,
    default: Any = None,
    required: bool = True,
):
    """Read ``field`` as a finite float (or int) from a JSON payload.

    Strings with thousands separators ("20,000,000") are accepted, the way
    the dashboard formats amounts.
    """
    raw = data.get(field)
    if raw is None or raw == "":
        if required and default is None:
            raise ValidationError(f"'{field}' is required")
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"'{field}' must be a number")
    if isinstance(raw, str):
        raw = raw.replace(",", "").replace(" ", "")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be a number") from None
    if not math.isfinite(value):
        raise ValidationError(f"'{field}' must be a finite number")
    if integer:
        if not value.is_integer():
            raise ValidationError(f"'{field}' must be an integer")
        value = int(value)
    if minimum is not None and value < minimum:
        raise ValidationError(f"'{field}' must be at least {minimum:g}")
    return value


def parse_choice(data: Mapping[str, Any], field: str, choices: Iterable[str], default=None):
    value = data.get(field) or default
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(f"'{field}' must be one of: {', '.join(allowed)}")
    return value


def parse_text(data: Mapping[str, Any], field: str) -> str:
    """Read ``field`` as a non-empty string, stripped of surrounding spaces."""
    value = data.get(field)
    if not isinstance(value, str):
        raise ValidationError(f"'{field}' must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"'{field}' is required")
    return value
