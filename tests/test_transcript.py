from __future__ import annotations

from survey_chatbot.transcript import Speaker, TranscriptLog


def test_append_returns_new_length_and_keeps_order() -> None:
    log = TranscriptLog()
    assert log.append(Speaker.BOT, "hello") == 1
    assert log.append(Speaker.USER, "hi") == 2
    assert [entry.text for entry in log.read_all()] == ["hello", "hi"]
    assert [entry.speaker for entry in log] == [Speaker.BOT, Speaker.USER]


def test_read_all_is_a_snapshot() -> None:
    log = TranscriptLog()
    log.append(Speaker.BOT, "one")
    first = log.read_all()
    log.append(Speaker.USER, "two")
    assert len(first) == 1
    assert len(log) == 2


def test_to_dict_serializes_speakers() -> None:
    log = TranscriptLog()
    log.append(Speaker.USER, "yo")
    data = log.to_dict()
    assert data["entries"] == [{"speaker": "user", "text": "yo"}]
    assert "started_at" in data
