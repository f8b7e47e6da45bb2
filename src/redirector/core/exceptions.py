"""Redirector exception hierarchy.

Every error raised at config-load time derives from RedirectorError and
carries a machine-readable code next to the human message, so the CLI can
render it without knowing the concrete type.

Evaluation never raises: comparators fail closed instead.
"""

from __future__ import annotations


class RedirectorError(Exception):
    """Base class for all redirector errors."""

    code = "REDIRECTOR_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(RedirectorError):
    """Config file could not be read, parsed or validated."""

    code = "CONFIG_INVALID"


class ConditionError(RedirectorError):
    """A raw condition string could not be compiled."""

    code = "CONDITION_INVALID"

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


class MalformedConditionError(ConditionError):
    """Condition does not split into exactly subject, operator and expected value."""

    code = "CONDITION_MALFORMED"


class UnknownSubjectError(ConditionError):
    """Condition subject is not one of the supported subjects."""

    code = "CONDITION_UNKNOWN_SUBJECT"


class UnknownOperatorError(ConditionError):
    """Operator is not supported for the condition's subject."""

    code = "CONDITION_UNKNOWN_OPERATOR"


def format_error_for_user(error: BaseException) -> str:
    """Render an exception as a single line suitable for the console."""
    if isinstance(error, RedirectorError):
        return f"[{error.code}] {error.message}"
    if isinstance(error, FileNotFoundError):
        return str(error)
    message = str(error) or error.__class__.__name__
    return f"{error.__class__.__name__}: {message}"
