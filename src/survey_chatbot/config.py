"""Configuration helpers for the survey chatbot."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from importlib import import_module
from pathlib import Path
from typing import Optional, Tuple


class SinkKind(str, Enum):
    """Available destinations for completed survey records."""

    WEBHOOK = "webhook"
    JSONL = "jsonl"
    REDIS = "redis"
    NONE = "none"

    @classmethod
    def from_string(
        cls,
        kind: str | None,
        default: Optional["SinkKind"] = None,
    ) -> "SinkKind":
        """Normalize arbitrary user input into a valid sink kind."""
        if not kind:
            if default is None:
                raise ValueError("Submission sink is required.")
            return default
        normalized = kind.strip().lower().replace("-", "_")
        for candidate in cls:
            if candidate.value == normalized:
                return candidate
        if default is not None:
            return default
        raise ValueError(f"Unsupported submission sink: {kind}")


@dataclass(slots=True)
class PacingSettings:
    """Simulated typing delays, in seconds."""

    typing_delay: float = 0.6
    typing_jitter: float = 0.4
    settle_delay: float = 0.3


@dataclass(slots=True)
class AppSettings:
    """Top-level application settings loaded from environment variables."""

    max_chars_per_response: int
    max_total_chars: int
    owner_name: str
    submission_sinks: Tuple[SinkKind, ...]
    submission_url: Optional[str]
    submission_timeout: float
    output_dir: Path
    submissions_log: Path
    redis_url: Optional[str]
    pacing: PacingSettings
    log_level: str = "INFO"
    session_ttl: float = 1800.0
    max_sessions: int = 1000

    @classmethod
    def load(cls) -> "AppSettings":
        """Load settings from the environment or .env file."""
        _ensure_dotenv()
        max_chars_per_response = _positive_int(
            "SURVEY_MAX_CHARS_PER_RESPONSE", "500"
        )
        max_total_chars = _positive_int("SURVEY_MAX_TOTAL_CHARS", "2000")
        owner_name = os.getenv("SURVEY_OWNER_NAME", "Fabian").strip()
        submission_url = os.getenv("SURVEY_SUBMISSION_URL")
        if submission_url is not None and not submission_url.strip():
            submission_url = None
        redis_url = os.getenv("SURVEY_REDIS_URL")
        if redis_url is not None and not redis_url.strip():
            redis_url = None

        default_sinks = "webhook" if submission_url else "jsonl"
        raw_sinks = os.getenv("SURVEY_SUBMISSION_SINKS", default_sinks)
        try:
            sinks = tuple(
                SinkKind.from_string(item)
                for item in raw_sinks.split(",")
                if item.strip()
            )
        except ValueError as exc:
            raise RuntimeError(
                f"SURVEY_SUBMISSION_SINKS is invalid: {exc}"
            ) from exc
        if not sinks:
            sinks = (SinkKind.NONE,)
        if SinkKind.WEBHOOK in sinks and not submission_url:
            raise RuntimeError(
                "SURVEY_SUBMISSION_URL is required for the webhook sink."
            )
        if SinkKind.REDIS in sinks and not redis_url:
            raise RuntimeError(
                "SURVEY_REDIS_URL is required for the redis sink."
            )

        submission_timeout = _positive_float("SURVEY_SUBMISSION_TIMEOUT", "10")
        output_dir = Path(os.getenv("SURVEY_OUTPUT_DIR", "outputs"))
        submissions_log = Path(
            os.getenv(
                "SURVEY_SUBMISSIONS_JSONL",
                str(output_dir / "submissions.jsonl"),
            )
        )
        pacing = PacingSettings(
            typing_delay=_non_negative_float("SURVEY_TYPING_DELAY", "0.6"),
            typing_jitter=_non_negative_float("SURVEY_TYPING_JITTER", "0.4"),
            settle_delay=_non_negative_float("SURVEY_SETTLE_DELAY", "0.3"),
        )
        log_level = os.getenv("SURVEY_LOG_LEVEL", "INFO").strip().upper()
        session_ttl = _positive_float("SURVEY_SESSION_TTL", "1800")
        max_sessions = _positive_int("SURVEY_MAX_SESSIONS", "1000")
        return cls(
            max_chars_per_response=max_chars_per_response,
            max_total_chars=max_total_chars,
            owner_name=owner_name or "Fabian",
            submission_sinks=sinks,
            submission_url=submission_url,
            submission_timeout=submission_timeout,
            output_dir=output_dir,
            submissions_log=submissions_log,
            redis_url=redis_url,
            pacing=pacing,
            log_level=log_level or "INFO",
            session_ttl=session_ttl,
            max_sessions=max_sessions,
        )


def _positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc
    if value < 1:
        raise RuntimeError(f"{name} must be at least 1")
    return value


def _positive_float(name: str, default: str) -> float:
    value = _non_negative_float(name, default)
    if value == 0:
        raise RuntimeError(f"{name} must be greater than 0")
    return value


def _non_negative_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number") from exc
    if value < 0:
        raise RuntimeError(f"{name} must not be negative")
    return value


def _ensure_dotenv() -> None:
    """Load dotenv variables and provide a helpful error if missing."""

    try:
        dotenv_module = import_module("dotenv")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dep
        raise RuntimeError(
            "python-dotenv is required. Install with `pip install "
            "python-dotenv`."
        ) from exc

    load_dotenv = getattr(dotenv_module, "load_dotenv")
    load_dotenv()
