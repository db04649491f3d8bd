from __future__ import annotations

import json
import math
from enum import Enum
from typing import Any


class JsonKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    OBJECT = "object"
    ARRAY = "array"


# Integral floats at or above this magnitude keep their repr() form.
_INTEGRAL_FLOAT_LIMIT = 1e16


def kind_of(value: Any) -> JsonKind:
    # bool is a subclass of int, so it has to be matched first.
    if value is None:
        return JsonKind.NULL
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, dict):
        return JsonKind.OBJECT
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def render(value: Any) -> str:
    """Canonical string form used by loose comparison and substitution.

    Strings render as themselves, booleans as ``true``/``false``, null as
    ``null``. Integral floats below 1e16 drop their fractional part so that
    ``1.0`` and ``1`` render the same; other floats use the shortest
    round-trip ``repr``. Objects and arrays render as compact JSON.
    """
    kind = kind_of(value)
    if kind is JsonKind.STRING:
        return value
    if kind is JsonKind.BOOLEAN:
        return "true" if value else "false"
    if kind is JsonKind.NULL:
        return "null"
    if kind is JsonKind.NUMBER:
        return _render_number(value)
    return json.dumps(
        _normalize_numbers(value), separators=(",", ":"), ensure_ascii=False, default=str
    )


def _normalize_numbers(value: Any) -> Any:
    # Nested numbers follow the same integral-float rule as top-level ones.
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_numbers(item) for item in value]
    if (
        isinstance(value, float)
        and value.is_integer()
        and abs(value) < _INTEGRAL_FLOAT_LIMIT
    ):
        return int(value)
    return value


def _render_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < _INTEGRAL_FLOAT_LIMIT:
        return str(int(value))
    return repr(value)


def strict_equal(left: Any, right: Any) -> bool:
    left_kind = kind_of(left)
    if left_kind is not kind_of(right):
        return False
    if left_kind is JsonKind.OBJECT:
        if set(left) != set(right):
            return False
        return all(strict_equal(left[key], right[key]) for key in left)
    if left_kind is JsonKind.ARRAY:
        if len(left) != len(right):
            return False
        return all(strict_equal(a, b) for a, b in zip(left, right))
    return left == right
