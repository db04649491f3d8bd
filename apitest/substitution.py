from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Mapping

from apitest.errors import SubstitutionError, UndefinedVariableError
from apitest.values import render


class UndefinedPolicy(str, Enum):
    ERROR = "error"
    EMPTY = "empty"


_OPEN = "{{"
_CLOSE = "}}"
_NAME = re.compile(r"^\s*\.?([A-Za-z_][A-Za-z0-9_.\-]*)\s*$")


def substitute(
    template: str,
    variables: Mapping[str, Any],
    *,
    undefined: UndefinedPolicy = UndefinedPolicy.ERROR,
) -> str:
    if _OPEN not in template:
        return template

    pieces: List[str] = []
    position = 0
    for start, end, name in _placeholders(template):
        pieces.append(template[position:start])
        pieces.append(render(_lookup(name, variables, undefined)))
        position = end
    pieces.append(template[position:])
    return "".join(pieces)


def substitute_headers(
    headers: Mapping[str, str],
    variables: Mapping[str, Any],
    *,
    undefined: UndefinedPolicy = UndefinedPolicy.ERROR,
) -> Dict[str, str]:
    return {
        name: substitute(str(value), variables, undefined=undefined)
        for name, value in headers.items()
    }


def substitute_value(
    value: Any,
    variables: Mapping[str, Any],
    *,
    undefined: UndefinedPolicy = UndefinedPolicy.ERROR,
) -> Any:
    """Substitute placeholders inside a decoded body structure.

    Only string leaves (and mapping keys) are templated, so the structure
    itself never has to be re-parsed. A leaf that is exactly one placeholder
    takes the variable's value as-is, keeping numbers and booleans typed.
    """
    if isinstance(value, str):
        whole = _whole_placeholder(value)
        if whole is not None:
            return _lookup(whole, variables, undefined)
        return substitute(value, variables, undefined=undefined)
    if isinstance(value, dict):
        return {
            substitute(str(key), variables, undefined=undefined): substitute_value(
                item, variables, undefined=undefined
            )
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [substitute_value(item, variables, undefined=undefined) for item in value]
    return value


def placeholder_names(template: str) -> List[str]:
    return [name for _, _, name in _placeholders(template)]


def _placeholders(template: str):
    position = 0
    while True:
        start = template.find(_OPEN, position)
        if start < 0:
            return
        end = template.find(_CLOSE, start + len(_OPEN))
        if end < 0:
            raise SubstitutionError(f"Unclosed placeholder in `{template}`")
        inner = template[start + len(_OPEN):end]
        match = _NAME.match(inner)
        if match is None:
            raise SubstitutionError(f"Malformed placeholder `{{{{{inner}}}}}` in `{template}`")
        yield start, end + len(_CLOSE), match.group(1)
        position = end + len(_CLOSE)


def _whole_placeholder(value: str) -> str | None:
    stripped = value.strip()
    if not (stripped.startswith(_OPEN) and stripped.endswith(_CLOSE)):
        return None
    found = list(_placeholders(stripped))
    if len(found) != 1:
        return None
    start, end, name = found[0]
    if start != 0 or end != len(stripped):
        return None
    return name


def _lookup(name: str, variables: Mapping[str, Any], undefined: UndefinedPolicy) -> Any:
    if name in variables:
        return variables[name]
    if undefined is UndefinedPolicy.EMPTY:
        return ""
    raise UndefinedVariableError(name)
