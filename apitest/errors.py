from __future__ import annotations


class ApiTestError(Exception):
    pass


class ConfigError(ApiTestError):
    pass


class SubstitutionError(ApiTestError):
    pass


class UndefinedVariableError(SubstitutionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Undefined variable `{name}`")


class TransportError(ApiTestError):
    pass


class NonJSONResponseError(ApiTestError):
    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        super().__init__(
            f"Field checks requested but response Content-Type is `{content_type or 'unset'}`"
        )


class ComparisonError(ApiTestError):
    pass


class ParseError(ComparisonError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unable to parse {value!r} as a number")


class InvalidRuleError(ComparisonError):
    def __init__(self, rule: str) -> None:
        self.rule = rule
        super().__init__(f"Invalid rule: {rule}")


class SelectorError(ApiTestError):
    def __init__(self, selector: str, message: str) -> None:
        self.selector = selector
        super().__init__(message)


class SelectorSyntaxError(SelectorError):
    pass


class PathNotFoundError(SelectorError):
    pass


class PathTypeError(SelectorError):
    pass


class CaptureError(ApiTestError):
    def __init__(self, var: str, selector: str, reason: str) -> None:
        self.var = var
        self.selector = selector
        super().__init__(f"Could not set `{var}` from `{selector}`: {reason}")
