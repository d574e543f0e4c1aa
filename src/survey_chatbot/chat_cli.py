"""Terminal front-end for the survey conversation."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .catalog import budget_status
from .config import AppSettings
from .pacing import BotMessagePacer
from .sessions import Stage, SubmitResult, SurveySession
from .submission import (
    SubmissionAdapter,
    build_submission_adapter,
    close_submission_adapter,
)

logger = logging.getLogger(__name__)

BOT_PREFIX = "Bot"
USER_PROMPT = "You: "
COMPLETE_BANNER = "Survey complete - thank you!"


def render_plain(text: str) -> str:
    """Drop the ``**bold**`` markers used by the web front-end."""

    return text.replace("**", "")


def _print_bot(text: str) -> None:
    print()  # noqa: T201 - CLI UX newline
    print(f"{BOT_PREFIX}: {render_plain(text)}")  # noqa: T201 - CLI output


def _print_menu(session: SurveySession) -> None:
    for key, label in session.catalog.menu():
        print(f"  [{key}] {label}")  # noqa: T201


def _print_counter(session: SurveySession, answer: str) -> None:
    cap = session.max_chars_per_response
    status = budget_status(len(answer), cap)
    suffix = "" if status == "ok" else f" ({status})"
    print(f"  {len(answer)} / {cap} characters{suffix}")  # noqa: T201


async def run_chat(
    settings: AppSettings,
    *,
    submitter: Optional[SubmissionAdapter] = None,
    read_input: Callable[[str], str] = input,
    pacer: Optional[BotMessagePacer] = None,
) -> SurveySession:
    """Walk one visitor through the survey on stdin/stdout."""

    owns_submitter = submitter is None
    adapter = submitter or build_submission_adapter(settings)
    session = SurveySession.create(settings, adapter)
    pacer = pacer or BotMessagePacer(_print_bot, settings.pacing)
    try:
        await pacer.say(session.start())
        while not session.is_complete:
            if session.stage is Stage.TOPIC:
                _print_menu(session)
            try:
                raw = read_input(USER_PROMPT)
            except EOFError:
                logger.info("Input closed before the survey finished.")
                break
            answered_stage = session.stage
            result = _dispatch(session, raw)
            if answered_stage.is_follow_up:
                _print_counter(session, raw.strip())
            if result.error_message and not result.bot_messages:
                print(f"  ! {result.error_message}")  # noqa: T201
            await pacer.say(result.bot_messages)
        if session.is_complete:
            print()  # noqa: T201
            print(COMPLETE_BANNER)  # noqa: T201
    finally:
        await pacer.close()
        if owns_submitter:
            close_submission_adapter(adapter)
    return session


def _dispatch(session: SurveySession, raw: str) -> SubmitResult:
    candidate = raw.strip()
    if session.stage is Stage.TOPIC and session.catalog.topic_label(
        candidate.upper()
    ):
        return session.pick_topic(candidate)
    return session.submit(raw)
