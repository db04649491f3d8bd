from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, MutableMapping, Optional

import yaml

from apitest.errors import ConfigError
from apitest.values import render


_ALLOWED_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}
_FORM_CONTENT_TYPES = {"urlencoded", "x-www-form-urlencoded", "application/x-www-form-urlencoded"}
_JSON_CONTENT_TYPES = {"", "json", "application/json"}

DEFAULT_TIMEOUT_SECONDS = 30.0


class ContentType(str, Enum):
    JSON = "json"
    FORM = "form"


@dataclass
class SetDirective:
    var: str
    source: str


@dataclass
class Expectation:
    status: int = 200
    values: Dict[str, Any] = field(default_factory=dict)
    strict: bool = False


@dataclass
class RequestSpec:
    name: str
    url: str
    method: str = "GET"
    body: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: ContentType = ContentType.JSON
    expect: Expectation = field(default_factory=Expectation)
    set: List[SetDirective] = field(default_factory=list)


@dataclass
class Environment:
    vars: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass
class TestSet:
    __test__ = False

    requests: List[RequestSpec]
    environment: Environment = field(default_factory=Environment)
    source: Optional[Path] = None


def load_test_set(path: str | Path) -> TestSet:
    spec_path = Path(path)
    if not spec_path.exists():
        raise ConfigError(f"Test file not found: {spec_path}")

    try:
        raw = yaml.safe_load(spec_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Could not read test file {spec_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {spec_path}: {exc}") from exc

    return parse_test_set(raw, source=spec_path)


def parse_test_set(raw: Any, source: Optional[Path] = None) -> TestSet:
    if not isinstance(raw, dict):
        raise ConfigError("Test file root must be a YAML mapping")

    environment = _parse_environment(raw.get("environment"))

    requests_raw = raw.get("requests")
    if not isinstance(requests_raw, list) or not requests_raw:
        raise ConfigError("`requests` is required and must be a non-empty list")

    requests = [_parse_request(index, conf) for index, conf in enumerate(requests_raw, start=1)]
    return TestSet(requests=requests, environment=environment, source=source)


def apply_env_overrides(variables: MutableMapping[str, Any], overrides: Iterable[str]) -> None:
    for item in overrides:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(
                f"Invalid variable `{item}`. Usage example: -e myvar=$MYVAR -e anothervar=$MYVAR2"
            )
        variables[key] = value


def _parse_environment(conf: Any) -> Environment:
    if conf is None:
        return Environment()
    if not isinstance(conf, dict):
        raise ConfigError("`environment` must be a mapping when provided")

    variables = conf.get("vars") or {}
    if not isinstance(variables, dict):
        raise ConfigError("`environment.vars` must be a mapping")

    headers = _parse_headers("environment", conf.get("headers"))

    timeout = conf.get("timeout", DEFAULT_TIMEOUT_SECONDS)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("`environment.timeout` must be a positive number of seconds")

    return Environment(
        vars={str(key): _normalize(value) for key, value in variables.items()},
        headers=headers,
        timeout_seconds=float(timeout),
    )


def _parse_request(index: int, conf: Any) -> RequestSpec:
    if not isinstance(conf, dict):
        raise ConfigError(f"Request #{index} must be a mapping")

    name = conf.get("name", f"request {index}")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"Request #{index} has an invalid `name`")
    label = f"Request #{index} `{name}`"

    url = conf.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError(f"{label} is missing string `url`")

    method = conf.get("method", "GET")
    if not isinstance(method, str):
        raise ConfigError(f"{label} has a non-string `method`")
    method = method.upper()
    if method not in _ALLOWED_METHODS:
        raise ConfigError(
            f"{label} has unsupported method `{method}`. "
            f"Allowed: {', '.join(sorted(_ALLOWED_METHODS))}"
        )

    body = conf.get("body")
    if body is not None and not isinstance(body, dict):
        raise ConfigError(f"{label} body must be a mapping when provided")

    return RequestSpec(
        name=name,
        url=url,
        method=method,
        body=_normalize(body) if body is not None else None,
        headers=_parse_headers(label, conf.get("headers")),
        content_type=_parse_content_type(label, conf.get("contentType")),
        expect=_parse_expectation(label, conf.get("expect")),
        set=_parse_set_directives(label, conf.get("set")),
    )


def _parse_headers(label: str, conf: Any) -> Dict[str, str]:
    if conf is None:
        return {}
    if not isinstance(conf, dict):
        raise ConfigError(f"{label} headers must be a mapping")
    headers: Dict[str, str] = {}
    for name, value in conf.items():
        if isinstance(value, (dict, list)):
            raise ConfigError(f"{label} header `{name}` must be a scalar value")
        headers[str(name)] = "" if value is None else render(_normalize(value))
    return headers


def _parse_content_type(label: str, value: Any) -> ContentType:
    if value is None:
        return ContentType.JSON
    if not isinstance(value, str):
        raise ConfigError(f"{label} contentType must be a string")
    normalized = value.strip().lower()
    if normalized in _FORM_CONTENT_TYPES:
        return ContentType.FORM
    if normalized in _JSON_CONTENT_TYPES:
        return ContentType.JSON
    raise ConfigError(f"{label} has unsupported contentType `{value}`")


def _parse_expectation(label: str, conf: Any) -> Expectation:
    if conf is None:
        return Expectation()
    if not isinstance(conf, dict):
        raise ConfigError(f"{label} expect must be a mapping")

    status = conf.get("status", 200)
    if isinstance(status, bool) or not isinstance(status, int):
        raise ConfigError(f"{label} expect.status must be an integer")

    values = conf.get("values") or {}
    if not isinstance(values, dict):
        raise ConfigError(f"{label} expect.values must be a mapping of selector to value")

    strict = conf.get("strict", False)
    if not isinstance(strict, bool):
        raise ConfigError(f"{label} expect.strict must be true or false")

    return Expectation(
        status=status,
        values={str(selector): _normalize(value) for selector, value in values.items()},
        strict=strict,
    )


def _parse_set_directives(label: str, conf: Any) -> List[SetDirective]:
    if conf is None:
        return []

    if isinstance(conf, dict):
        pairs = list(conf.items())
    elif isinstance(conf, list):
        pairs = []
        for position, item in enumerate(conf, start=1):
            if not isinstance(item, dict) or "var" not in item or "from" not in item:
                raise ConfigError(f"{label} set[{position}] must be a mapping with `var` and `from`")
            pairs.append((item["var"], item["from"]))
    else:
        raise ConfigError(f"{label} set must be a list of {{var, from}} mappings or a mapping")

    directives: List[SetDirective] = []
    for var, source in pairs:
        if not isinstance(var, str) or not var.strip():
            raise ConfigError(f"{label} set has an invalid variable name `{var}`")
        if not isinstance(source, str) or not source.strip():
            raise ConfigError(f"{label} set `{var}` needs a string selector")
        directives.append(SetDirective(var=var.strip(), source=source.strip()))
    return directives


def _normalize(value: Any) -> Any:
    # YAML timestamps become strings so every value stays JSON-compatible.
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _normalize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    return value
