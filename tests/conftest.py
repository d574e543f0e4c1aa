from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from survey_chatbot.config import AppSettings, PacingSettings, SinkKind
from survey_chatbot.sessions import SurveySession
from survey_chatbot.submission import SubmissionError, SubmissionPayload


class RecordingSubmitter:
    def __init__(self) -> None:
        self.payloads: List[SubmissionPayload] = []

    def deliver(self, payload: SubmissionPayload) -> None:
        self.payloads.append(payload)


class FailingSubmitter:
    def __init__(self) -> None:
        self.calls = 0

    def deliver(self, payload: SubmissionPayload) -> None:
        self.calls += 1
        raise SubmissionError("endpoint unreachable")


def make_settings(tmp_path: Path, **overrides) -> AppSettings:
    values = dict(
        max_chars_per_response=500,
        max_total_chars=2000,
        owner_name="Fabian",
        submission_sinks=(SinkKind.JSONL,),
        submission_url=None,
        submission_timeout=5.0,
        output_dir=tmp_path,
        submissions_log=tmp_path / "submissions.jsonl",
        redis_url=None,
        pacing=PacingSettings(typing_delay=0, typing_jitter=0, settle_delay=0),
    )
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def session(submitter: RecordingSubmitter) -> SurveySession:
    survey = SurveySession(submitter=submitter)
    survey.start()
    return survey


def advance_to_topic(survey: SurveySession) -> None:
    assert survey.submit("x@y.com").accepted
    assert survey.submit("Sam").accepted


def advance_to_followups(survey: SurveySession, topic: str = "A") -> None:
    advance_to_topic(survey)
    assert survey.submit(topic).accepted
