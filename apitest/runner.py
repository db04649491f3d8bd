from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, MutableMapping, Optional, Tuple
from urllib.parse import urlsplit

from apitest.capture import capture
from apitest.config_loader import Environment, Expectation, RequestSpec, TestSet
from apitest.errors import CaptureError, SubstitutionError, TransportError
from apitest.evaluator import AssertionFailure, NonJSONPolicy, evaluate
from apitest.request_engine import RequestEngine
from apitest.substitution import UndefinedPolicy, substitute, substitute_headers, substitute_value

if TYPE_CHECKING:
    from apitest.metrics import RunMetrics


logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class RequestReport:
    name: str
    method: str
    url: str
    status_code: Optional[int] = None
    state: RequestState = RequestState.PENDING
    failures: List[AssertionFailure] = field(default_factory=list)
    error: Optional[str] = None
    fields_skipped: bool = False
    duration_seconds: float = 0.0
    captured: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.state is RequestState.PASSED


@dataclass
class RunSummary:
    reports: List[RequestReport] = field(default_factory=list)
    state: RunState = RunState.IDLE

    @property
    def total(self) -> int:
        return len(self.reports)

    @property
    def failed(self) -> int:
        return sum(1 for report in self.reports if not report.passed)

    @property
    def passed(self) -> bool:
        return self.failed == 0


class TestRunner:
    __test__ = False

    def __init__(
        self,
        request_engine: RequestEngine,
        *,
        metrics: Optional["RunMetrics"] = None,
        undefined: UndefinedPolicy = UndefinedPolicy.ERROR,
        non_json: NonJSONPolicy = NonJSONPolicy.SKIP,
        verbose: bool = False,
    ) -> None:
        self.request_engine = request_engine
        self.metrics = metrics
        self.undefined = undefined
        self.non_json = non_json
        self.verbose = verbose
        self.state = RunState.IDLE

    def run(
        self,
        test_set: TestSet,
        variables: MutableMapping[str, Any],
        *,
        only: Optional[str] = None,
    ) -> RunSummary:
        summary = RunSummary(state=RunState.RUNNING)
        self.state = RunState.RUNNING

        count = 0
        for spec in test_set.requests:
            if only and spec.name != only:
                continue
            count += 1
            report = self.run_request(spec, count, test_set.environment, variables)
            logger.info(
                "%d. %s %s %s -> %s [%s]",
                count,
                report.name,
                report.method,
                report.url,
                report.status_code if report.status_code is not None else "ERR",
                report.state.value.upper(),
            )
            summary.reports.append(report)

        summary.state = RunState.COMPLETED
        self.state = RunState.COMPLETED
        logger.info("Total requests: %d, failed: %d", summary.total, summary.failed)
        return summary

    def run_request(
        self,
        spec: RequestSpec,
        index: int,
        environment: Environment,
        variables: MutableMapping[str, Any],
    ) -> RequestReport:
        report = RequestReport(name=spec.name, method=spec.method, url=spec.url)
        logger.info("%d. %s", index, spec.name)
        report.state = RequestState.RUNNING
        started = time.perf_counter()

        try:
            url, headers, body, expectation = self._resolve(spec, environment, variables)
        except SubstitutionError as exc:
            report.duration_seconds = time.perf_counter() - started
            return self._finish(report, f"substitution failed: {exc}")
        report.url = url
        logger.info("  %s %s", spec.method, url)

        try:
            result = self.request_engine.execute(spec.method, url, headers, body, spec.content_type)
        except TransportError as exc:
            report.duration_seconds = time.perf_counter() - started
            return self._finish(report, str(exc))

        report.status_code = result.status_code
        report.duration_seconds = result.duration_seconds
        if self.verbose:
            logger.info("  response body: %s", result.text)

        evaluation = evaluate(
            expectation, result.status_code, result.headers, result.body, non_json=self.non_json
        )
        report.failures = evaluation.failures
        report.fields_skipped = evaluation.fields_skipped
        self._log_evaluation(spec, report)

        try:
            report.captured = capture(
                spec.set, evaluation.document, variables, is_json=evaluation.is_json
            )
        except CaptureError as exc:
            return self._finish(report, str(exc))

        return self._finish(report, None)

    def _resolve(
        self,
        spec: RequestSpec,
        environment: Environment,
        variables: MutableMapping[str, Any],
    ) -> Tuple[str, Dict[str, str], Optional[Dict[str, Any]], Expectation]:
        url = substitute(spec.url, variables, undefined=self.undefined)
        merged_headers = {**environment.headers, **spec.headers}
        headers = substitute_headers(merged_headers, variables, undefined=self.undefined)
        body = None
        if spec.body is not None:
            body = substitute_value(spec.body, variables, undefined=self.undefined)
        # Expected values may reference earlier captures, e.g. `id: "{{ created_id }}"`.
        expectation = replace(
            spec.expect,
            values=substitute_value(spec.expect.values, variables, undefined=self.undefined),
        )
        return url, headers, body, expectation

    def _log_evaluation(self, spec: RequestSpec, report: RequestReport) -> None:
        if report.status_code == spec.expect.status:
            logger.info("  OK status is %s", report.status_code)
        for failure in report.failures:
            logger.info("  FAIL %s: %s", failure.selector, failure.message)

    def _finish(self, report: RequestReport, error: Optional[str]) -> RequestReport:
        report.error = error
        if error is not None:
            logger.info("  ERROR %s", error)
        failed = error is not None or bool(report.failures)
        report.state = RequestState.FAILED if failed else RequestState.PASSED

        if self.metrics is not None:
            hostname, path = split_url(report.url)
            self.metrics.record(
                report.name,
                hostname,
                path,
                report.method,
                report.duration_seconds,
                failed=failed,
            )
        return report


def split_url(url: str) -> Tuple[str, str]:
    try:
        parts = urlsplit(url)
        return parts.hostname or "", parts.path
    except ValueError:
        return "", ""
