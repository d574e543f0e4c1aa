from __future__ import annotations

import pytest

from survey_chatbot.validators import (
    ValidationError,
    ValidationFailure,
    check_cumulative,
    check_length,
    is_valid_email,
)


@pytest.mark.parametrize("value", ["a@b.com", "first.last@sub.example.org"])
def test_accepts_email_shapes(value: str) -> None:
    assert is_valid_email(value)


@pytest.mark.parametrize(
    "value", ["a@b", "a.com", "a @b.com", "a@@b.com", "@b.com", "a@b.", ""]
)
def test_rejects_malformed_email(value: str) -> None:
    assert not is_valid_email(value)


def test_check_length_boundary() -> None:
    assert check_length("x" * 500, 500)
    assert not check_length("x" * 501, 500)


def test_check_cumulative_boundary() -> None:
    assert check_cumulative(1990, 10, 2000)
    assert not check_cumulative(1990, 20, 2000)


def test_validation_error_carries_failure() -> None:
    error = ValidationError(ValidationFailure.INVALID_EMAIL, "bad email")
    assert error.failure is ValidationFailure.INVALID_EMAIL
    assert str(error) == "bad email"
