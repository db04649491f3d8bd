from apitest.capture import capture
from apitest.comparator import RULES, check_rules, compare
from apitest.config_loader import (
    ContentType,
    Environment,
    Expectation,
    RequestSpec,
    SetDirective,
    TestSet,
    apply_env_overrides,
    load_test_set,
    parse_test_set,
)
from apitest.errors import (
    ApiTestError,
    CaptureError,
    ConfigError,
    InvalidRuleError,
    NonJSONResponseError,
    ParseError,
    PathNotFoundError,
    PathTypeError,
    SelectorError,
    SubstitutionError,
    TransportError,
    UndefinedVariableError,
)
from apitest.evaluator import AssertionFailure, Evaluation, NonJSONPolicy, evaluate
from apitest.metrics import RunMetrics
from apitest.monitor import Monitor
from apitest.reporter import Reporter
from apitest.request_engine import RequestEngine, RequestResult
from apitest.runner import RequestReport, RequestState, RunState, RunSummary, TestRunner
from apitest.selector import select
from apitest.substitution import UndefinedPolicy, substitute

__all__ = [
    "ApiTestError",
    "AssertionFailure",
    "CaptureError",
    "ConfigError",
    "ContentType",
    "Environment",
    "Evaluation",
    "Expectation",
    "InvalidRuleError",
    "Monitor",
    "NonJSONPolicy",
    "NonJSONResponseError",
    "ParseError",
    "PathNotFoundError",
    "PathTypeError",
    "RULES",
    "Reporter",
    "RequestEngine",
    "RequestReport",
    "RequestResult",
    "RequestSpec",
    "RequestState",
    "RunMetrics",
    "RunState",
    "RunSummary",
    "SelectorError",
    "SetDirective",
    "SubstitutionError",
    "TestRunner",
    "TestSet",
    "TransportError",
    "UndefinedPolicy",
    "UndefinedVariableError",
    "apply_env_overrides",
    "capture",
    "check_rules",
    "compare",
    "evaluate",
    "load_test_set",
    "parse_test_set",
    "select",
    "substitute",
]
