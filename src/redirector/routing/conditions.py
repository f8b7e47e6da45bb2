"""Redirector Condition Compiler.

Conditions are written as three whitespace-separated tokens:

    <Subject> <Operator> <Expected>

Subjects and their operators:
- User-Agent: has, is, starts_with, ends_with
- Time: lt, gt (expected value is an RFC3339 timestamp)

A condition is compiled once when the config is loaded. Compilation picks
the comparator from a closed (subject, operator) table, so request handling
never looks at the raw text again.

Time literals are kept verbatim and only parsed at evaluation time; a
malformed timestamp makes the condition fail closed rather than rejecting
the config.

Example:
    condition = compile_condition("User-Agent has Chrome")
    condition.compare("Mozilla/5.0 Chrome/70", condition.expected)  # True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import structlog

from redirector.core.exceptions import (
    MalformedConditionError,
    UnknownOperatorError,
    UnknownSubjectError,
)
from redirector.routing.comparators import (
    Comparator,
    contains,
    equals,
    has_prefix,
    has_suffix,
    time_after,
    time_before,
)

logger = structlog.get_logger()


class Subject(Enum):
    """Request-derived values a condition can inspect."""

    USER_AGENT = "User-Agent"
    TIME = "Time"


class Operator(Enum):
    """Condition operators. Which ones are valid depends on the subject."""

    HAS = "has"
    IS = "is"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    LT = "lt"
    GT = "gt"


_COMPARATORS: dict[tuple[Subject, Operator], Comparator] = {
    (Subject.USER_AGENT, Operator.HAS): contains,
    (Subject.USER_AGENT, Operator.IS): equals,
    (Subject.USER_AGENT, Operator.STARTS_WITH): has_prefix,
    (Subject.USER_AGENT, Operator.ENDS_WITH): has_suffix,
    # "now lt expected": now precedes expected
    (Subject.TIME, Operator.LT): time_before,
    (Subject.TIME, Operator.GT): time_after,
}


def supported_operators(subject: Subject) -> list[Operator]:
    """Operators accepted for a subject, in declaration order."""
    return [op for (subj, op) in _COMPARATORS if subj is subject]


@dataclass(frozen=True)
class Condition:
    """A compiled condition.

    Instances are only produced fully formed (by compile_condition() or
    directly in tests) and are never mutated, so they can be shared by all
    concurrent requests.
    """

    subject: Subject
    operator: Operator
    expected: str
    raw: str
    compare: Comparator = field(repr=False, compare=False)

    def check(self, value: str) -> bool:
        """Compare a request-derived value against the expected literal."""
        return self.compare(value, self.expected)

    def __str__(self) -> str:
        return self.raw


def compile_condition(raw: str) -> Condition:
    """Compile a raw condition string.

    Args:
        raw: Condition text, e.g. "Time lt 2018-10-28T20:00:00+01:00".

    Returns:
        The compiled Condition.

    Raises:
        MalformedConditionError: If the text is not exactly three tokens.
        UnknownSubjectError: If the subject is not supported.
        UnknownOperatorError: If the operator is not valid for the subject.
    """
    tokens = raw.split()
    if len(tokens) != 3:
        logger.error("Malformed condition", condition=raw, tokens=len(tokens))
        raise MalformedConditionError(
            f"Condition {raw!r} must have exactly 3 tokens "
            f"(subject operator expected), got {len(tokens)}",
            raw=raw,
        )

    subject_token, operator_token, expected = tokens

    try:
        subject = Subject(subject_token)
    except ValueError:
        logger.error("Unknown condition subject", condition=raw, subject=subject_token)
        known = ", ".join(s.value for s in Subject)
        raise UnknownSubjectError(
            f"Unknown subject {subject_token!r} in condition {raw!r} (expected one of: {known})",
            raw=raw,
        ) from None

    operator = next((op for op in Operator if op.value == operator_token), None)
    compare = _COMPARATORS.get((subject, operator)) if operator is not None else None

    if operator is None or compare is None:
        logger.error(
            "Unknown condition operator",
            condition=raw,
            subject=subject.value,
            operator=operator_token,
        )
        known = ", ".join(op.value for op in supported_operators(subject))
        raise UnknownOperatorError(
            f"Operator {operator_token!r} is not supported for {subject.value} "
            f"in condition {raw!r} (expected one of: {known})",
            raw=raw,
        )

    return Condition(
        subject=subject,
        operator=operator,
        expected=expected,
        raw=raw,
        compare=compare,
    )
