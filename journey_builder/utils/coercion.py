"""
Lenient readers for untrusted JSON values.

Each helper returns a value of the requested shape or the supplied default;
none of them raise.
"""

import math
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence, Union

Number = Union[int, float]


def as_dict(value: Any) -> Dict[str, Any]:
    """Return a deep copy of ``value`` if it is a mapping, else an empty dict."""
    if isinstance(value, dict):
        return deepcopy(value)
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return {}


def as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return deepcopy(list(value))
    return []


def as_str(value: Any, default: Optional[str] = None) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def as_number(value: Any, default: Optional[Number] = None) -> Optional[Number]:
    """Read a finite number, accepting numeric strings."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        if not math.isfinite(parsed):
            return default
        return int(parsed) if parsed.is_integer() else parsed
    return default


def as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    number = as_number(value)
    if number is None:
        return default
    return int(round(number))


def as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return bool(value)


def one_of(value: Any, allowed: Sequence[str], default: str) -> str:
    return value if isinstance(value, str) and value in allowed else default


def str_list(value: Any) -> List[str]:
    return [item for item in (as_str(entry) for entry in as_list(value)) if item is not None]


def first_present(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None
