from __future__ import annotations

import re
from typing import Any, List, Tuple, Union

from apitest.errors import PathNotFoundError, PathTypeError, SelectorSyntaxError


Segment = Union[str, int]

_INDEX = re.compile(r"\[(-?\d+)\]")
_KEY_WITH_INDEXES = re.compile(r"^([^\[\]]*)((?:\[-?\d+\])*)$")
_NUMERIC_KEY = re.compile(r"^-?\d+$")


def parse_selector(selector: str) -> Tuple[Segment, ...]:
    """Split a selector such as ``.foo.bar[0]`` or ``foo.[0].baz`` into segments.

    Keys come back as strings and array indices as ints. An empty selector
    (or a lone ``.``) yields no segments and selects the whole document.
    """
    path = selector.strip()
    if path.startswith("."):
        path = path[1:]
    if not path:
        return ()

    segments: List[Segment] = []
    for part in path.split("."):
        match = _KEY_WITH_INDEXES.match(part)
        if not part or match is None:
            raise SelectorSyntaxError(
                selector,
                f"Invalid selector `{selector}`. Use e.g. foo, .foo.bar, foo.[0] or foo[0].bar",
            )
        key, indexes = match.groups()
        if key:
            segments.append(key)
        segments.extend(int(index) for index in _INDEX.findall(indexes))
    return tuple(segments)


def select(document: Any, selector: str) -> Any:
    current = document
    walked: List[str] = []
    for segment in parse_selector(selector):
        current = _step(current, segment, selector, walked)
        walked.append(f"[{segment}]" if isinstance(segment, int) else str(segment))
    return current


def _step(current: Any, segment: Segment, selector: str, walked: List[str]) -> Any:
    location = ".".join(walked) or "<root>"

    if isinstance(current, dict):
        if isinstance(segment, int):
            raise PathTypeError(
                selector, f"Cannot index object at `{location}` with [{segment}] in `{selector}`"
            )
        if segment not in current:
            raise PathNotFoundError(selector, f"Key `{segment}` not found at `{location}` in `{selector}`")
        return current[segment]

    if isinstance(current, list):
        index = segment
        if isinstance(index, str):
            if not _NUMERIC_KEY.match(index):
                raise PathTypeError(
                    selector, f"Cannot look up key `{index}` in array at `{location}` in `{selector}`"
                )
            index = int(index)
        if not -len(current) <= index < len(current):
            raise PathNotFoundError(
                selector, f"Index [{index}] out of range at `{location}` in `{selector}`"
            )
        return current[index]

    raise PathTypeError(
        selector, f"Cannot select `{segment}` from scalar value at `{location}` in `{selector}`"
    )
