"""Defensive conversions for loosely typed upstream JSON values."""

import math
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation


def safe_int(val: object) -> int | None:
    if val is None or isinstance(val, bool):
        return None
    try:
        return int(val)  # type: ignore[call-overload]
    except (ValueError, TypeError):
        return None


def safe_float(val: object) -> float | None:
    if val is None or isinstance(val, bool):
        return None
    try:
        result = float(val)  # type: ignore[arg-type]
    except (ValueError, TypeError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def float_or_zero(val: object) -> float:
    result = safe_float(val)
    return 0.0 if result is None else result


def raw_amount(val: object) -> int:
    """Parse a raw token amount (possibly a decimal string) into an exact int.

    Fractional parts are truncated; values that do not parse become 0.
    """
    if val is None or isinstance(val, bool):
        return 0
    if isinstance(val, int):
        return val
    try:
        amount = Decimal(str(val))
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    return int(amount)


def parse_datetime(val: object) -> datetime | None:
    """ISO-8601 string or unix seconds to an aware UTC datetime."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, int | float):
        try:
            return datetime.fromtimestamp(val, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(val, str) or not val:
        return None
    try:
        dt = datetime.fromisoformat(val.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def round_half_up(value: float) -> int:
    """Round to the nearest int, ties away from zero for positives (0.5 -> 1)."""
    return math.floor(value + 0.5)
