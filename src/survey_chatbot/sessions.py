"""Conversation state machine for a single survey visitor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .catalog import (
    CUSTOM_TOPIC_KEY,
    DEFAULT_CATALOG,
    EMPTY_RESPONSE_MESSAGE,
    OTHER_TOPIC_KEY,
    RESPONSE_TOO_LONG_TEMPLATE,
    TOTAL_TOO_LONG_MESSAGE,
    UNKNOWN_TOPIC_TEMPLATE,
    QuestionCatalog,
    input_kind_for,
    mentions_other_topic,
    placeholder_for,
)
from .config import AppSettings
from .submission import (
    NullSubmissionAdapter,
    SubmissionAdapter,
    SubmissionError,
    SubmissionPayload,
)
from .transcript import Speaker, TranscriptEntry, TranscriptLog
from .validators import (
    ValidationError,
    ValidationFailure,
    check_cumulative,
    check_length,
    is_valid_email,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS_PER_RESPONSE = 500
DEFAULT_MAX_TOTAL_CHARS = 2000


class Stage(str, Enum):
    """Positions in the scripted conversation, in order."""

    INTRO = "intro"
    EMAIL = "email"
    NAME = "name"
    TOPIC = "topic"
    OTHER_TOPIC = "other_topic"
    FOLLOWUP1 = "followup1"
    FOLLOWUP2 = "followup2"
    FOLLOWUP3 = "followup3"
    FOLLOWUP4 = "followup4"
    COMPLETE = "complete"

    @property
    def is_follow_up(self) -> bool:
        return self in FOLLOW_UP_STAGES


FOLLOW_UP_STAGES: Tuple[Stage, ...] = (
    Stage.FOLLOWUP1,
    Stage.FOLLOWUP2,
    Stage.FOLLOWUP3,
    Stage.FOLLOWUP4,
)


def _empty_answers() -> List[str]:
    return []


@dataclass(slots=True)
class SurveyRecord:
    """Answers accumulated for one visitor."""

    email: str = ""
    name: str = ""
    topic_key: str = ""
    topic_label: str = ""
    answers: List[str] = field(default_factory=_empty_answers)

    def copy(self) -> "SurveyRecord":
        return SurveyRecord(
            email=self.email,
            name=self.name,
            topic_key=self.topic_key,
            topic_label=self.topic_label,
            answers=list(self.answers),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "name": self.name,
            "topic_key": self.topic_key,
            "topic_label": self.topic_label,
            "answers": list(self.answers),
        }


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only view of a session handed to presentation shells."""

    stage: Stage
    record: SurveyRecord
    transcript: Tuple[TranscriptEntry, ...]
    total_chars_used: int
    pending_error: Optional[str]
    placeholder: str
    input_kind: str
    menu: Tuple[Tuple[str, str], ...]

    @property
    def menu_visible(self) -> bool:
        return self.stage is Stage.TOPIC

    @property
    def accepts_input(self) -> bool:
        return self.stage not in (Stage.INTRO, Stage.COMPLETE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "record": self.record.to_dict(),
            "transcript": [entry.to_dict() for entry in self.transcript],
            "total_chars_used": self.total_chars_used,
            "pending_error": self.pending_error,
            "placeholder": self.placeholder,
            "input_kind": self.input_kind,
            "menu_visible": self.menu_visible,
            "menu": [{"key": key, "label": label} for key, label in self.menu],
        }


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Outcome of handing one input to the state machine."""

    accepted: bool
    session: SessionSnapshot
    error_message: Optional[str] = None
    bot_messages: Tuple[str, ...] = ()


class SurveySession:
    """Owns the stage, record, and transcript for one conversation."""

    def __init__(
        self,
        *,
        catalog: QuestionCatalog = DEFAULT_CATALOG,
        submitter: Optional[SubmissionAdapter] = None,
        max_chars_per_response: int = DEFAULT_MAX_CHARS_PER_RESPONSE,
        max_total_chars: int = DEFAULT_MAX_TOTAL_CHARS,
    ) -> None:
        self._catalog = catalog
        self._submitter: SubmissionAdapter = submitter or NullSubmissionAdapter()
        self._max_chars_per_response = max_chars_per_response
        self._max_total_chars = max_total_chars
        self._stage = Stage.INTRO
        self._record = SurveyRecord()
        self._transcript = TranscriptLog()
        self._total_chars_used = 0
        self._pending_error: Optional[str] = None
        self._submitted = False

    @classmethod
    def create(
        cls,
        settings: AppSettings,
        submitter: Optional[SubmissionAdapter] = None,
        *,
        catalog: Optional[QuestionCatalog] = None,
    ) -> "SurveySession":
        if catalog is None:
            catalog = QuestionCatalog(owner_name=settings.owner_name)
        return cls(
            catalog=catalog,
            submitter=submitter,
            max_chars_per_response=settings.max_chars_per_response,
            max_total_chars=settings.max_total_chars,
        )

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def record(self) -> SurveyRecord:
        return self._record.copy()

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    @property
    def total_chars_used(self) -> int:
        return self._total_chars_used

    @property
    def pending_error(self) -> Optional[str]:
        return self._pending_error

    @property
    def max_chars_per_response(self) -> int:
        return self._max_chars_per_response

    @property
    def is_complete(self) -> bool:
        return self._stage is Stage.COMPLETE

    def transcript(self) -> Tuple[TranscriptEntry, ...]:
        return self._transcript.read_all()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            stage=self._stage,
            record=self._record.copy(),
            transcript=self._transcript.read_all(),
            total_chars_used=self._total_chars_used,
            pending_error=self._pending_error,
            placeholder=placeholder_for(self._stage),
            input_kind=input_kind_for(self._stage),
            menu=self._catalog.menu(),
        )

    def start(self) -> List[str]:
        """Show the greeting and move on to the email question."""

        if self._stage is not Stage.INTRO:
            return []
        messages = [self._catalog.intro, self._catalog.email_question]
        for message in messages:
            self._say(message)
        self._advance(Stage.EMAIL)
        return messages

    def submit(self, raw_text: str) -> SubmitResult:
        """Validate one raw input and either reject it or advance."""

        if self._stage in (Stage.INTRO, Stage.COMPLETE):
            return self._result(accepted=False)

        self._pending_error = None
        value = (raw_text or "").strip()
        try:
            self._validate(value)
            if self._stage is Stage.TOPIC:
                replies = self._accept_topic_text(value)
            else:
                replies = self._accept(value)
        except ValidationError as exc:
            return self._reject(exc)
        return self._result(accepted=True, bot_messages=replies)

    def pick_topic(self, key: str) -> SubmitResult:
        """Select a menu entry directly, bypassing free-text parsing."""

        if self._stage is not Stage.TOPIC:
            return self._result(accepted=False)

        self._pending_error = None
        normalized = (key or "").strip().upper()
        label = self._catalog.topic_label(normalized)
        if label is None:
            return self._reject(
                ValidationError(
                    ValidationFailure.UNKNOWN_TOPIC,
                    UNKNOWN_TOPIC_TEMPLATE.format(key=key),
                )
            )
        self._hear(label)
        return self._result(
            accepted=True,
            bot_messages=self._select_topic(normalized, label),
        )

    def _validate(self, value: str) -> None:
        if not value:
            raise ValidationError(ValidationFailure.EMPTY, EMPTY_RESPONSE_MESSAGE)
        if not check_length(value, self._max_chars_per_response):
            raise ValidationError(
                ValidationFailure.RESPONSE_TOO_LONG,
                RESPONSE_TOO_LONG_TEMPLATE.format(
                    cap=self._max_chars_per_response
                ),
            )
        if self._stage.is_follow_up and not check_cumulative(
            self._total_chars_used, len(value), self._max_total_chars
        ):
            raise ValidationError(
                ValidationFailure.TOTAL_TOO_LONG,
                TOTAL_TOO_LONG_MESSAGE,
            )
        if self._stage is Stage.EMAIL and not is_valid_email(value):
            raise ValidationError(
                ValidationFailure.INVALID_EMAIL,
                self._catalog.email_clarification,
            )

    def _accept(self, value: str) -> List[str]:
        stage = self._stage
        self._hear(value)
        if stage is Stage.EMAIL:
            self._record.email = value
            return self._reply(self._catalog.name_question, Stage.NAME)
        if stage is Stage.NAME:
            self._record.name = value
            return self._reply(self._catalog.name_greeting(value), Stage.TOPIC)
        if stage is Stage.OTHER_TOPIC:
            self._record.topic_label = value
            return self._reply(
                self._catalog.follow_up(0, value), Stage.FOLLOWUP1
            )
        return self._accept_answer(value)

    def _accept_topic_text(self, value: str) -> List[str]:
        candidate = value.upper()
        label = self._catalog.topic_label(candidate) if len(value) == 1 else None
        self._hear(value)
        if label is not None:
            return self._select_topic(candidate, label)
        if mentions_other_topic(value):
            return self._select_topic(
                OTHER_TOPIC_KEY, self._catalog.topics[OTHER_TOPIC_KEY]
            )
        return self._select_topic(CUSTOM_TOPIC_KEY, value)

    def _select_topic(self, key: str, label: str) -> List[str]:
        self._record.topic_key = key
        self._record.topic_label = label
        logger.debug("Topic resolved to %s", key)
        if key == OTHER_TOPIC_KEY:
            return self._reply(
                self._catalog.other_topic_question, Stage.OTHER_TOPIC
            )
        return self._reply(self._catalog.follow_up(0, label), Stage.FOLLOWUP1)

    def _accept_answer(self, value: str) -> List[str]:
        self._record.answers.append(value)
        self._total_chars_used += len(value)
        answered = len(self._record.answers)
        if answered < len(FOLLOW_UP_STAGES):
            return self._reply(
                self._catalog.follow_up(answered, self._record.topic_label),
                FOLLOW_UP_STAGES[answered],
            )
        self._dispatch_submission()
        return self._reply(self._catalog.thank_you(), Stage.COMPLETE)

    def _dispatch_submission(self) -> None:
        if self._submitted:
            return
        self._submitted = True
        payload = SubmissionPayload.from_record(self._record)
        try:
            self._submitter.deliver(payload)
        except SubmissionError as exc:
            logger.warning("Failed to save survey record: %s", exc)
        except Exception:
            logger.exception("Submission adapter raised unexpectedly")
        else:
            logger.info("Survey record handed to %s", type(self._submitter).__name__)

    def _reject(self, error: ValidationError) -> SubmitResult:
        self._pending_error = error.message
        replies: List[str] = []
        if error.failure is ValidationFailure.INVALID_EMAIL:
            self._say(error.message)
            replies.append(error.message)
        logger.debug("Rejected input at %s: %s", self._stage.value, error.failure.value)
        return self._result(
            accepted=False,
            error_message=error.message,
            bot_messages=replies,
        )

    def _reply(self, message: str, next_stage: Stage) -> List[str]:
        self._say(message)
        self._advance(next_stage)
        return [message]

    def _advance(self, next_stage: Stage) -> None:
        logger.debug("Stage %s -> %s", self._stage.value, next_stage.value)
        self._stage = next_stage

    def _say(self, text: str) -> None:
        self._transcript.append(Speaker.BOT, text)

    def _hear(self, text: str) -> None:
        self._transcript.append(Speaker.USER, text)

    def _result(
        self,
        *,
        accepted: bool,
        error_message: Optional[str] = None,
        bot_messages: Optional[List[str]] = None,
    ) -> SubmitResult:
        return SubmitResult(
            accepted=accepted,
            session=self.snapshot(),
            error_message=error_message,
            bot_messages=tuple(bot_messages or ()),
        )
