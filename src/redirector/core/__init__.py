"""Core.

Only exceptions are exported here: redirector.core.config imports
redirector.routing, which imports this package.
"""

from .exceptions import (
    ConditionError,
    ConfigError,
    MalformedConditionError,
    RedirectorError,
    UnknownOperatorError,
    UnknownSubjectError,
    format_error_for_user,
)

__all__ = [
    "RedirectorError",
    "ConfigError",
    "ConditionError",
    "MalformedConditionError",
    "UnknownSubjectError",
    "UnknownOperatorError",
    "format_error_for_user",
]
