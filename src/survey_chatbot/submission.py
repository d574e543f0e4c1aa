"""Delivery of completed survey records to external sinks."""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence
from uuid import uuid4

import redis
import requests
from redis import Redis
from redis.exceptions import RedisError

from .config import AppSettings, SinkKind

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .sessions import SurveyRecord

logger = logging.getLogger(__name__)


class SubmissionError(RuntimeError):
    """Raised when a survey record cannot be delivered."""


def _timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class SubmissionPayload:
    """Wire representation of a completed survey."""

    timestamp: str
    email: str
    name: str
    topic: str
    why: str
    tried_before: str
    preventing: str
    need_help_with: str

    @classmethod
    def from_record(
        cls,
        record: "SurveyRecord",
        *,
        submitted_at: Optional[datetime] = None,
    ) -> "SubmissionPayload":
        answers = list(record.answers)
        answers.extend([""] * (4 - len(answers)))
        return cls(
            timestamp=_timestamp(submitted_at or datetime.now(timezone.utc)),
            email=record.email,
            name=record.name,
            topic=record.topic_label,
            why=answers[0],
            tried_before=answers[1],
            preventing=answers[2],
            need_help_with=answers[3],
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class SubmissionAdapter(Protocol):
    """Anything that accepts a finished survey."""

    def deliver(self, payload: SubmissionPayload) -> None:
        ...


class NullSubmissionAdapter:
    """Discards submissions; useful when no sink is configured."""

    def deliver(self, payload: SubmissionPayload) -> None:
        logger.info("Submission sink disabled; discarding survey record.")


class BackgroundSubmissionAdapter:
    """Base for sinks that write on a single worker thread.

    ``deliver`` only queues the payload, so the conversation never waits on
    network or disk I/O. Subclasses implement ``write``, which runs on the
    worker and raises ``SubmissionError`` on failure; the outcome is logged
    from the future's done-callback.
    """

    def __init__(self, *, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="survey-submit",
        )

    def deliver(self, payload: SubmissionPayload) -> None:
        future = self._executor.submit(self.write, payload)
        future.add_done_callback(self._log_outcome)

    def write(self, payload: SubmissionPayload) -> None:
        raise NotImplementedError

    def close(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _log_outcome(self, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Failed to save survey record: %s", exc)
            return
        logger.info("Survey record delivered by %s", type(self).__name__)


class WebhookSubmissionAdapter(BackgroundSubmissionAdapter):
    """POSTs survey records as JSON."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook URL is required.")
        super().__init__(executor=executor)
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def write(self, payload: SubmissionPayload) -> None:
        try:
            response = self._session.post(
                self._url,
                json=payload.to_dict(),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SubmissionError(f"Webhook delivery failed: {exc}") from exc

    def close(self, *, wait: bool = True) -> None:
        super().close(wait=wait)
        self._session.close()


class JsonlSubmissionAdapter(BackgroundSubmissionAdapter):
    """Appends survey records to a JSONL archive."""

    def __init__(
        self,
        archive_path: Path,
        *,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        super().__init__(executor=executor)
        self._archive_path = archive_path

    @property
    def archive_path(self) -> Path:
        return self._archive_path

    def write(self, payload: SubmissionPayload) -> None:
        record_id = _new_record_id()
        meta: Dict[str, Dict[str, Any]] = {
            "_meta": {
                "submission_id": record_id,
                "ts": _timestamp(datetime.now(timezone.utc)),
                "n_records": 1,
            }
        }
        try:
            self._archive_path.parent.mkdir(parents=True, exist_ok=True)
            with self._archive_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(meta, ensure_ascii=False) + "\n")
                handle.write(
                    json.dumps(payload.to_dict(), ensure_ascii=False) + "\n"
                )
        except OSError as exc:
            raise SubmissionError(
                f"Could not append to {self._archive_path}: {exc}"
            ) from exc
        logger.info("Survey record %s archived to %s", record_id, self._archive_path)


class RedisSubmissionAdapter(BackgroundSubmissionAdapter):
    """Stores survey records in Redis with a time-ordered index."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[Redis] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        if client is None and not redis_url:
            raise ValueError("A Redis URL or client is required.")
        super().__init__(executor=executor)
        self._redis_url = redis_url
        self._timeout = timeout
        self._redis: Optional[Redis] = client

    def _get_redis(self) -> Redis:
        if self._redis is None:
            try:
                self._redis = redis.from_url(  # type: ignore[call-overload]
                    self._redis_url,
                    decode_responses=True,
                    socket_timeout=self._timeout,
                    socket_connect_timeout=self._timeout,
                )
            except RedisError as exc:
                raise SubmissionError(f"Redis connection failed: {exc}") from exc
        return self._redis

    def write(self, payload: SubmissionPayload) -> None:
        client = self._get_redis()
        record_id = _new_record_id()
        key = f"submission:{record_id}"
        created_ts = datetime.now(timezone.utc).timestamp()
        try:
            client.set(key, json.dumps(payload.to_dict(), ensure_ascii=False))
            client.zadd("submissions:index", {record_id: created_ts})
        except RedisError as exc:
            raise SubmissionError(
                f"Redis persistence failed for {key}: {exc}"
            ) from exc
        logger.info("Survey record stored in Redis under %s", key)


class CompositeSubmissionAdapter:
    """Fans a submission out to several sinks."""

    def __init__(self, adapters: Sequence[SubmissionAdapter]) -> None:
        self._adapters: List[SubmissionAdapter] = list(adapters)

    @property
    def adapters(self) -> List[SubmissionAdapter]:
        return list(self._adapters)

    def deliver(self, payload: SubmissionPayload) -> None:
        failures: List[str] = []
        for adapter in self._adapters:
            try:
                adapter.deliver(payload)
            except SubmissionError as exc:
                logger.warning(
                    "%s failed: %s", type(adapter).__name__, exc
                )
                failures.append(str(exc))
        if failures and len(failures) == len(self._adapters):
            raise SubmissionError("; ".join(failures))


def _new_record_id() -> str:
    created_at = datetime.now(timezone.utc)
    return "survey-{}-{}".format(
        created_at.strftime("%Y%m%d%H%M%S"),
        uuid4().hex[:6],
    )


def build_submission_adapter(settings: AppSettings) -> SubmissionAdapter:
    """Create the adapter described by ``settings.submission_sinks``."""

    adapters: List[SubmissionAdapter] = []
    for kind in settings.submission_sinks:
        if kind is SinkKind.WEBHOOK:
            assert settings.submission_url is not None
            adapters.append(
                WebhookSubmissionAdapter(
                    settings.submission_url,
                    timeout=settings.submission_timeout,
                )
            )
        elif kind is SinkKind.JSONL:
            adapters.append(JsonlSubmissionAdapter(settings.submissions_log))
        elif kind is SinkKind.REDIS:
            adapters.append(
                RedisSubmissionAdapter(
                    settings.redis_url,
                    timeout=settings.submission_timeout,
                )
            )
    if not adapters:
        return NullSubmissionAdapter()
    if len(adapters) == 1:
        return adapters[0]
    return CompositeSubmissionAdapter(adapters)


def close_submission_adapter(adapter: SubmissionAdapter) -> None:
    """Wait for queued deliveries before the process exits."""

    targets = (
        adapter.adapters
        if isinstance(adapter, CompositeSubmissionAdapter)
        else [adapter]
    )
    for target in targets:
        if isinstance(target, BackgroundSubmissionAdapter):
            target.close(wait=True)
