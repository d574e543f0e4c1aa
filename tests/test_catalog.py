from __future__ import annotations

import pytest

from survey_chatbot.catalog import (
    DEFAULT_CATALOG,
    TOPICS,
    budget_status,
    build_catalog,
    input_kind_for,
    mentions_other_topic,
    placeholder_for,
)
from survey_chatbot.sessions import Stage


def test_catalog_has_six_topics_with_catch_all() -> None:
    assert list(TOPICS) == ["A", "B", "C", "D", "E", "F"]
    assert TOPICS["F"] == "Something else"


def test_topics_are_read_only() -> None:
    with pytest.raises(TypeError):
        DEFAULT_CATALOG.topics["G"] = "Nope"  # type: ignore[index]


def test_follow_ups_interpolate_lowercased_label() -> None:
    label = "Publishing Books"
    rendered = [DEFAULT_CATALOG.follow_up(i, label) for i in range(4)]
    assert "publishing books" in rendered[0]
    assert "publishing books" in rendered[1]
    assert "publishing books" not in rendered[2]
    assert "publishing books" in rendered[3]


def test_third_follow_up_ignores_topic() -> None:
    assert DEFAULT_CATALOG.follow_up(2, "One") == DEFAULT_CATALOG.follow_up(2, "Two")


def test_thank_you_uses_owner_name() -> None:
    assert build_catalog("Robin").thank_you().endswith("Stay tuned - Robin")
    assert build_catalog().owner_name == "Fabian"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Something else", True),
        ("another idea", True),
        ("Other thing", True),
        ("Learning Rust", False),
    ],
)
def test_mentions_other_topic(text: str, expected: bool) -> None:
    assert mentions_other_topic(text) is expected


def test_placeholders_follow_stage() -> None:
    assert placeholder_for(Stage.EMAIL) == "your@email.com"
    assert placeholder_for(Stage.NAME) == "Your first name"
    assert placeholder_for(Stage.TOPIC) == "Type A, B, C, D, E, or F"
    assert placeholder_for(Stage.FOLLOWUP3) == "Type your answer..."
    assert input_kind_for(Stage.EMAIL) == "email"
    assert input_kind_for(Stage.NAME) == "text"


@pytest.mark.parametrize(
    "length, expected", [(350, "ok"), (351, "warning"), (450, "warning"), (451, "danger")]
)
def test_budget_status_thresholds(length: int, expected: str) -> None:
    assert budget_status(length, 500) == expected
