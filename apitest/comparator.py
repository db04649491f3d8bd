from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Mapping, Tuple

from apitest.errors import InvalidRuleError, ParseError
from apitest.values import JsonKind, kind_of, render, strict_equal


EQUALS = "equals"
LT = "lt"
GT = "gt"
LE = "le"
GE = "ge"
EXISTS = "exists"

RULES = (EQUALS, LT, GT, LE, GE, EXISTS)

# Plain decimal or exponent notation; no underscores or surrounding whitespace.
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_NUMERIC_RULES: Dict[str, Tuple[Callable[[float, float], bool], str]] = {
    LT: (lambda a, b: a < b, "less than"),
    GT: (lambda a, b: a > b, "greater than"),
    LE: (lambda a, b: a <= b, "less than or equal to"),
    GE: (lambda a, b: a >= b, "greater than or equal to"),
}


def compare(rule: str, received: Any, comparison: Any, *, strict: bool = False) -> bool:
    if rule == EQUALS:
        if strict:
            return strict_equal(received, comparison)
        return render(received) == render(comparison)

    if rule in _NUMERIC_RULES:
        operator, _ = _NUMERIC_RULES[rule]
        left, right = as_floats(received, comparison)
        return operator(left, right)

    if rule == EXISTS:
        # Absent keys are rejected by the selector before a rule is applied.
        return True

    raise InvalidRuleError(rule)


def check_rules(received: Any, rules: Mapping[str, Any], *, strict: bool = False) -> List[str]:
    failures: List[str] = []
    for rule, comparison in rules.items():
        if compare(rule, received, comparison, strict=strict):
            continue
        failures.append(describe_failure(rule, received, comparison))
    return failures


def describe_failure(rule: str, received: Any, comparison: Any) -> str:
    if rule in _NUMERIC_RULES:
        _, wording = _NUMERIC_RULES[rule]
        return f"expected {render(received)} {wording} {render(comparison)}"
    return f"expected: {render(comparison)} received: {render(received)}"


def is_ruleset(value: Any) -> bool:
    return isinstance(value, dict) and any(key in RULES for key in value)


def as_floats(received: Any, comparison: Any) -> Tuple[float, float]:
    return _as_float(received), _as_float(comparison)


def _as_float(value: Any) -> float:
    if kind_of(value) not in (JsonKind.NUMBER, JsonKind.STRING):
        raise ParseError(value)
    text = render(value)
    if not _NUMBER.fullmatch(text):
        raise ParseError(value)
    number = float(text)
    if math.isnan(number) or math.isinf(number):
        raise ParseError(value)
    return number
