"""Input predicates shared by the conversation state machine."""

from __future__ import annotations

import re
from enum import Enum

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ValidationFailure(str, Enum):
    """Reasons a single input can be rejected."""

    EMPTY = "empty"
    INVALID_EMAIL = "invalid_email"
    RESPONSE_TOO_LONG = "response_too_long"
    TOTAL_TOO_LONG = "total_too_long"
    UNKNOWN_TOPIC = "unknown_topic"


class ValidationError(ValueError):
    """Raised when user input cannot be accepted at the current stage."""

    def __init__(self, failure: ValidationFailure, message: str) -> None:
        super().__init__(message)
        self.failure = failure
        self.message = message


def is_valid_email(value: str) -> bool:
    """Return True when ``value`` looks like ``local@domain.tld``."""

    return bool(EMAIL_PATTERN.match(value))


def check_length(value: str, per_response_cap: int) -> bool:
    return len(value) <= per_response_cap


def check_cumulative(total: int, value_length: int, total_cap: int) -> bool:
    return total + value_length <= total_cap
