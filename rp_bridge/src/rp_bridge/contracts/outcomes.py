from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, assert_never

ItemStatus = Literal["PASSED", "FAILED", "SKIPPED"]


@dataclass(frozen=True, slots=True)
class Success:
    pass


@dataclass(frozen=True, slots=True)
class Failure:
    """An assertion failure in the test body."""

    message: str
    trace: str | None = None


@dataclass(frozen=True, slots=True)
class Error:
    """An unexpected exception, including failures in setup or teardown."""

    message: str
    trace: str | None = None


@dataclass(frozen=True, slots=True)
class Ignored:
    reason: str | None = None


Outcome = Success | Failure | Error | Ignored


@dataclass(frozen=True, slots=True)
class OutcomeRecord:
    key: str
    status: ItemStatus

    # Keys of the enclosing items, outermost first.
    scope: tuple[str, ...] = ()


def resolve_status(outcome: Outcome) -> ItemStatus:
    if isinstance(outcome, Success):
        return "PASSED"
    if isinstance(outcome, (Failure, Error)):
        return "FAILED"
    if isinstance(outcome, Ignored):
        return "SKIPPED"
    assert_never(outcome)


def describe_failure(outcome: Outcome) -> str | None:
    """Build the item description for failed outcomes; None otherwise."""
    if not isinstance(outcome, (Failure, Error)):
        return None
    if not outcome.trace:
        return outcome.message
    return f"{outcome.message}\n\nStacktrace:\n{outcome.trace}"
