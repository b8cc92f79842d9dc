"""Conversions of configuration values into the numeric and string forms sensors use.

Configuration values arrive as one of a few plain types: a list of strings,
a string, an integer, a float or a bool. Numeric conversions accept only the
arithmetic ones; string conversion accepts strings and arithmetic values.
"""

from __future__ import annotations

import math
import struct
from typing import Union

ConfigValue = Union[list, str, int, float, bool]

_UINT32 = 1 << 32
_INT32_HALF = 1 << 31


def _require_number(value: object, target: str) -> Union[int, float]:
    if isinstance(value, (bool, int, float)):
        return value
    raise ValueError(f"Cannot translate type {type(value).__name__} to {target}")


def _as_float32(number: float) -> float:
    if not math.isfinite(number):
        return number
    try:
        return struct.unpack("<f", struct.pack("<f", number))[0]
    except OverflowError:
        return math.copysign(math.inf, number)


def to_float(value: ConfigValue) -> float:
    """Convert an arithmetic value to a single-precision float."""
    return _as_float32(float(_require_number(value, "float")))


def to_double(value: ConfigValue) -> float:
    """Convert an arithmetic value to a double-precision float."""
    return float(_require_number(value, "double"))


def to_int(value: ConfigValue) -> int:
    """Convert an arithmetic value to a 32-bit signed integer, truncating toward zero."""
    number = int(_require_number(value, "int"))
    return (number + _INT32_HALF) % _UINT32 - _INT32_HALF


def to_unsigned(value: ConfigValue) -> int:
    """Convert an arithmetic value to a 32-bit unsigned integer, truncating toward zero."""
    return int(_require_number(value, "unsigned int")) % _UINT32


def to_string(value: ConfigValue) -> str:
    """Convert a string or arithmetic value to text.

    Integers and bools are written in decimal, floats with six decimals.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:f}"
    raise ValueError(f"Cannot translate type {type(value).__name__} to string")