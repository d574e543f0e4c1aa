from __future__ import annotations

import asyncio
from typing import Iterator, List

from conftest import RecordingSubmitter, make_settings
from survey_chatbot.chat_cli import COMPLETE_BANNER, render_plain, run_chat
from survey_chatbot.sessions import Stage


def _scripted(answers: List[str]):
    feed: Iterator[str] = iter(answers)

    def read_input(_prompt: str) -> str:
        try:
            return next(feed)
        except StopIteration:
            raise EOFError from None

    return read_input


def test_render_plain_strips_bold_markers() -> None:
    assert render_plain("**Why** now?") == "Why now?"


def test_terminal_chat_runs_to_completion(tmp_path, capsys) -> None:
    recorder = RecordingSubmitter()
    answers = ["nope", "x@y.com", "Sam", "b", "why", "x" * 600, "tried", "blocker", "help"]
    session = asyncio.run(
        run_chat(
            make_settings(tmp_path),
            submitter=recorder,
            read_input=_scripted(answers),
        )
    )
    assert session.stage is Stage.COMPLETE
    assert session.record.topic_key == "B"
    assert session.record.answers == ["why", "tried", "blocker", "help"]
    assert len(recorder.payloads) == 1
    out = capsys.readouterr().out
    assert "Hmm, that doesn't look like a valid email" in out
    assert "[A] Building and selling automation templates" in out
    assert "Please keep your response under 500 characters." in out
    assert "600 / 500 characters (danger)" in out
    assert COMPLETE_BANNER in out


def test_terminal_chat_stops_on_eof(tmp_path) -> None:
    session = asyncio.run(
        run_chat(
            make_settings(tmp_path),
            submitter=RecordingSubmitter(),
            read_input=_scripted(["x@y.com"]),
        )
    )
    assert session.stage is Stage.NAME
