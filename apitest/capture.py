from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, MutableMapping

from apitest.config_loader import SetDirective
from apitest.errors import CaptureError, SelectorError
from apitest.evaluator import UNDECODABLE
from apitest.selector import select
from apitest.values import render


logger = logging.getLogger(__name__)


def capture(
    directives: Iterable[SetDirective],
    document: Any,
    variables: MutableMapping[str, Any],
    *,
    is_json: bool = True,
) -> Dict[str, Any]:
    captured: Dict[str, Any] = {}
    for directive in directives:
        if not is_json or document is UNDECODABLE:
            raise CaptureError(directive.var, directive.source, "response body is not JSON")
        try:
            value = select(document, directive.source)
        except SelectorError as exc:
            raise CaptureError(directive.var, directive.source, str(exc)) from exc

        variables[directive.var] = value
        captured[directive.var] = value
        logger.info("  SET %s = %s", directive.var, render(value))
    return captured
