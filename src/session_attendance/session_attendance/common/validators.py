from __future__ import annotations

import math
from typing import Any, Optional


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float when it is a real finite number, else None.

    Booleans and numeric strings are not accepted: clients must send JSON numbers.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return number
