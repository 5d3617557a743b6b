"""
Lenient value coercion for records read from loosely-typed storage.

Stored records may carry strings where numbers are expected, NaN, or
negative totals. These helpers clamp or default such values instead of
raising, so a single corrupt field never makes a whole record unreadable.
"""

import math
from typing import Any, Iterable, Optional, Union


def to_finite_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Convert value to a finite float, or return default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def to_non_negative(value: Any) -> float:
    """Finite, non-negative float; everything else becomes 0."""
    number = to_finite_float(value, 0.0)
    return number if number > 0 else 0.0


def coerce_interval_days(value: Any) -> int:
    """Custom recurrence interval; missing, non-numeric or < 1 becomes 1."""
    number = to_finite_float(value)
    if number is None:
        return 1
    interval = int(number)
    return interval if interval >= 1 else 1


def clean_number(value: float) -> Union[float, int]:
    """Render integral floats as ints so stored lists read [50, 80]."""
    return int(value) if float(value).is_integer() else value


def to_number_list(values: Optional[Iterable[Any]]) -> list[Union[float, int]]:
    """Finite numbers from values, de-duplicated and sorted ascending."""
    if values is None or isinstance(values, (str, bytes)):
        return []
    numbers = set()
    for value in values:
        number = to_finite_float(value)
        if number is not None:
            numbers.add(number)
    return [clean_number(number) for number in sorted(numbers)]
