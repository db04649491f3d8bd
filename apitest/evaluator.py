from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional

from apitest.comparator import EQUALS, EXISTS, check_rules, compare, describe_failure, is_ruleset
from apitest.config_loader import Expectation
from apitest.errors import ComparisonError, NonJSONResponseError, PathNotFoundError, SelectorError
from apitest.selector import select


logger = logging.getLogger(__name__)


class NonJSONPolicy(str, Enum):
    SKIP = "skip"
    FAIL = "fail"


@dataclass
class AssertionFailure:
    selector: str
    rule: str
    expected: Any
    received: Any
    message: str


@dataclass
class Evaluation:
    status_matched: bool
    failures: List[AssertionFailure] = field(default_factory=list)
    fields_skipped: bool = False
    is_json: bool = False
    document: Any = None

    @property
    def passed(self) -> bool:
        return self.status_matched and not self.failures


class _Undecodable:
    pass


UNDECODABLE = _Undecodable()


def is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or mime.endswith("+json")


def decode_document(headers: Mapping[str, str], body: bytes) -> Any:
    """Decode a JSON response body.

    Returns ``None`` for a non-JSON response and ``UNDECODABLE`` when the
    Content-Type claims JSON but the body does not parse.
    """
    if not is_json_content_type(headers.get("Content-Type")):
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return UNDECODABLE


def evaluate(
    expectation: Expectation,
    status_code: int,
    headers: Mapping[str, str],
    body: bytes,
    *,
    non_json: NonJSONPolicy = NonJSONPolicy.SKIP,
) -> Evaluation:
    evaluation = Evaluation(status_matched=status_code == expectation.status)
    if not evaluation.status_matched:
        evaluation.failures.append(
            AssertionFailure(
                selector="status",
                rule="status",
                expected=expectation.status,
                received=status_code,
                message=f"expected: {expectation.status} received: {status_code}",
            )
        )

    content_type = headers.get("Content-Type", "")
    evaluation.is_json = is_json_content_type(content_type)
    if not evaluation.is_json:
        if expectation.values:
            _handle_non_json(evaluation, content_type, non_json)
        return evaluation

    document = decode_document(headers, body)
    if document is UNDECODABLE:
        evaluation.is_json = False
        evaluation.failures.append(
            AssertionFailure(
                selector="body",
                rule="decode",
                expected="JSON document",
                received=_preview(body),
                message="could not decode response body as JSON",
            )
        )
        return evaluation

    evaluation.document = document
    for selector, expected in expectation.values.items():
        evaluation.failures.extend(_check_field(document, selector, expected, expectation.strict))
    return evaluation


def _check_field(document: Any, selector: str, expected: Any, strict: bool) -> List[AssertionFailure]:
    ruleset = is_ruleset(expected)
    try:
        received = select(document, selector)
    except SelectorError as exc:
        rule = EXISTS if isinstance(exc, PathNotFoundError) else "select"
        return [AssertionFailure(selector, rule, expected, None, str(exc))]

    if not ruleset:
        if compare(EQUALS, received, expected, strict=strict):
            return []
        return [
            AssertionFailure(
                selector, EQUALS, expected, received, describe_failure(EQUALS, received, expected)
            )
        ]

    failures: List[AssertionFailure] = []
    for rule, comparison in expected.items():
        try:
            messages = check_rules(received, {rule: comparison}, strict=strict)
        except ComparisonError as exc:
            messages = [str(exc)]
        failures.extend(
            AssertionFailure(selector, str(rule), comparison, received, message) for message in messages
        )
    return failures


def _handle_non_json(evaluation: Evaluation, content_type: str, policy: NonJSONPolicy) -> None:
    error = NonJSONResponseError(content_type)
    if policy is NonJSONPolicy.FAIL:
        evaluation.failures.append(
            AssertionFailure(
                selector="body",
                rule="content-type",
                expected="application/json",
                received=content_type,
                message=str(error),
            )
        )
        return
    evaluation.fields_skipped = True
    logger.warning("  SKIP field checks: %s", error)


def _preview(body: bytes, limit: int = 80) -> str:
    text = body.decode("utf-8", errors="replace")
    return text if len(text) <= limit else text[:limit] + "..."
