"""Static question content for the survey conversation."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Tuple

FollowUpTemplate = Callable[[str], str]

DEFAULT_OWNER_NAME = "Fabian"

OTHER_TOPIC_KEY = "F"
CUSTOM_TOPIC_KEY = "custom"
OTHER_TOPIC_PHRASES: Tuple[str, ...] = ("something else", "other")

TOPICS: Mapping[str, str] = MappingProxyType(
    {
        "A": "Building and selling automation templates",
        "B": "Growing an email list in the AI or automation space",
        "C": "Using AI to build simple web apps without a coding background",
        "D": "Publishing books using AI",
        "E": "Building a small solo creator business",
        OTHER_TOPIC_KEY: "Something else",
    }
)

INTRO_MESSAGE = (
    "Hey! \U0001F44B\n\n"
    "I'm working on creating something new and I'd love your input. This "
    "quick chat will help me understand what would be most valuable for "
    "you.\n\n"
    "It takes about 2-3 minutes. Ready?"
)

EMAIL_QUESTION = "First, what's your email address?"

EMAIL_CLARIFICATION = (
    "Hmm, that doesn't look like a valid email. Could you try again?"
)

NAME_QUESTION = "Perfect! And what's your first name?"

NAME_GREETING = "Nice to meet you, {name}! \U0001F60A"

TOPIC_QUESTION = (
    "Over the last few years, I've worked on a few different things:\n\n"
    "• Built 46 n8n automation templates (sold via a subscription)\n"
    "• Grew an email list to around 14k subscribers\n"
    "• Published several books on Amazon\n"
    "• Started building simple AI web apps using vibe coding\n"
    "• Built a small solo creator business without 1-1 clients\n\n"
    "**If you had to pick one, what would you most want to learn more "
    "about?**"
)

OTHER_TOPIC_QUESTION = (
    "Interesting! What topic would you like to learn more about?"
)

THANK_YOU_TEMPLATE = (
    "Thank you so much for sharing! \U0001F64F\n\n"
    "Your answers are incredibly helpful. I read every single response "
    "personally.\n\n"
    "Based on what you and others tell me, I'll be creating something that "
    "directly addresses these challenges.\n\n"
    "Stay tuned - {owner}"
)

RESPONSE_TOO_LONG_TEMPLATE = (
    "Please keep your response under {cap} characters."
)
TOTAL_TOO_LONG_MESSAGE = (
    "You've reached the maximum response length. Please be more concise."
)
EMPTY_RESPONSE_MESSAGE = "Please type a response before sending."
UNKNOWN_TOPIC_TEMPLATE = "'{key}' is not one of the listed topics."


def _why_question(topic: str) -> str:
    return (
        "Interesting choice! **Why do you want to learn about "
        f"{topic.lower()}?** What's driving that interest for you?"
    )


def _tried_before_question(topic: str) -> str:
    return (
        f"Got it. **Have you tried {topic.lower()} before?** If yes, what "
        "happened? If not, what's held you back?"
    )


def _blocker_question(_topic: str) -> str:
    return (
        "This is really helpful. **What's the #1 thing preventing you from "
        "making progress on this right now?** Be as specific as you can."
    )


def _desired_help_question(topic: str) -> str:
    return (
        "Last question: **If I could help you with just ONE thing related to "
        f"{topic.lower()}, what would make the biggest difference for you "
        "right now?**"
    )


FOLLOW_UP_QUESTIONS: Tuple[FollowUpTemplate, ...] = (
    _why_question,
    _tried_before_question,
    _blocker_question,
    _desired_help_question,
)

PLACEHOLDERS: Mapping[str, str] = MappingProxyType(
    {
        "email": "your@email.com",
        "name": "Your first name",
        "topic": "Type A, B, C, D, E, or F",
    }
)
DEFAULT_PLACEHOLDER = "Type your answer..."

BUDGET_WARNING_RATIO = 0.7
BUDGET_DANGER_RATIO = 0.9


@dataclass(frozen=True, slots=True)
class QuestionCatalog:
    """Immutable bundle of every message the survey can show."""

    owner_name: str = DEFAULT_OWNER_NAME
    topics: Mapping[str, str] = field(default_factory=lambda: TOPICS)
    intro: str = INTRO_MESSAGE
    email_question: str = EMAIL_QUESTION
    email_clarification: str = EMAIL_CLARIFICATION
    name_question: str = NAME_QUESTION
    topic_question: str = TOPIC_QUESTION
    other_topic_question: str = OTHER_TOPIC_QUESTION
    follow_ups: Tuple[FollowUpTemplate, ...] = FOLLOW_UP_QUESTIONS

    def topic_label(self, key: str) -> str | None:
        return self.topics.get(key)

    def follow_up(self, index: int, topic_label: str) -> str:
        """Render follow-up ``index`` (zero based) for ``topic_label``."""

        return self.follow_ups[index](topic_label)

    def name_greeting(self, name: str) -> str:
        """Greeting plus the topic menu, shown after the name is accepted."""

        return f"{NAME_GREETING.format(name=name)}\n\n{self.topic_question}"

    def thank_you(self) -> str:
        return THANK_YOU_TEMPLATE.format(owner=self.owner_name)

    def menu(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(self.topics.items())


def build_catalog(owner_name: str | None = None) -> QuestionCatalog:
    """Create a catalog signed by ``owner_name``."""

    return QuestionCatalog(owner_name=owner_name or DEFAULT_OWNER_NAME)


def mentions_other_topic(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in OTHER_TOPIC_PHRASES)


def placeholder_for(stage: str) -> str:
    """Input hint for ``stage`` (a stage value such as ``"email"``)."""

    return PLACEHOLDERS.get(stage, DEFAULT_PLACEHOLDER)


def input_kind_for(stage: str) -> str:
    return "email" if stage == "email" else "text"


def budget_status(length: int, cap: int) -> str:
    """Classify a draft answer length against the per-response cap."""

    if length > cap * BUDGET_DANGER_RATIO:
        return "danger"
    if length > cap * BUDGET_WARNING_RATIO:
        return "warning"
    return "ok"


DEFAULT_CATALOG = build_catalog()
