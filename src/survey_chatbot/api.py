"""FastAPI entrypoint that exposes the survey conversation over HTTP."""

from __future__ import annotations

import argparse
import logging
import random
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import AppSettings
from .observability import initialize_logging
from .pacing import compute_delay
from .sessions import SubmitResult, SurveySession
from .submission import (
    SubmissionAdapter,
    build_submission_adapter,
    close_submission_adapter,
)

logger = logging.getLogger(__name__)


class MessageRequest(BaseModel):
    text: str


class TopicRequest(BaseModel):
    key: str


class SessionResponse(BaseModel):
    session_id: str
    session: Dict[str, Any]
    bot_messages: List[str] = []
    typing_delays: List[float] = []


class SubmitResponse(BaseModel):
    session_id: str
    accepted: bool
    error_message: Optional[str] = None
    bot_messages: List[str] = []
    typing_delays: List[float] = []
    session: Dict[str, Any]


@dataclass(slots=True)
class _RegistryEntry:
    session: SurveySession
    last_seen: float


class SessionRegistry:
    """Maps opaque ids to independent survey sessions.

    Completed sessions are dropped right away. Idle ones expire after
    ``settings.session_ttl`` seconds, and the least recently used one is
    evicted when ``settings.max_sessions`` is reached.
    """

    def __init__(
        self,
        settings: AppSettings,
        submitter: SubmissionAdapter,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._submitter = submitter
        self._clock = clock
        self._idle_ttl = settings.session_ttl
        self._max_sessions = settings.max_sessions
        self._sessions: OrderedDict[str, _RegistryEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self) -> tuple[str, SurveySession]:
        self.prune()
        while len(self._sessions) >= self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted idle survey session %s (registry full)", evicted)
        session_id = uuid4().hex
        session = SurveySession.create(self._settings, self._submitter)
        self._sessions[session_id] = _RegistryEntry(session, self._clock())
        return session_id, session

    def get(self, session_id: str) -> SurveySession:
        self.prune()
        entry = self._sessions.get(session_id)
        if entry is None:
            raise HTTPException(
                status_code=404,
                detail=f"Survey session '{session_id}' not found.",
            )
        entry.last_seen = self._clock()
        self._sessions.move_to_end(session_id)
        return entry.session

    def release_if_complete(self, session_id: str) -> None:
        entry = self._sessions.get(session_id)
        if entry is not None and entry.session.is_complete:
            del self._sessions[session_id]
            logger.info("Survey session %s completed", session_id)

    def discard(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise HTTPException(
                status_code=404,
                detail=f"Survey session '{session_id}' not found.",
            )

    def prune(self) -> int:
        """Drop sessions idle for longer than the TTL; return how many."""

        cutoff = self._clock() - self._idle_ttl
        expired = [
            session_id
            for session_id, entry in self._sessions.items()
            if entry.last_seen <= cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.debug("Expired %d idle survey session(s)", len(expired))
        return len(expired)


def create_app(
    settings: AppSettings,
    *,
    submitter: Optional[SubmissionAdapter] = None,
    allow_origins: Sequence[str] | None = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """Create a FastAPI app serving survey sessions."""

    owns_submitter = submitter is None
    adapter = submitter or build_submission_adapter(settings)
    registry = SessionRegistry(settings, adapter)
    delay_rng = rng or random.Random()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_submitter:
            close_submission_adapter(adapter)

    app = FastAPI(title="Survey Chatbot", lifespan=lifespan)
    app.state.registry = registry

    origins = list(allow_origins) if allow_origins else ["*"]
    allow_credentials = origins != ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _delays(messages: Sequence[str]) -> List[float]:
        return [
            round(compute_delay(settings.pacing, delay_rng), 3)
            for _ in messages
        ]

    def _submit_response(session_id: str, result: SubmitResult) -> SubmitResponse:
        messages = list(result.bot_messages)
        return SubmitResponse(
            session_id=session_id,
            accepted=result.accepted,
            error_message=result.error_message,
            bot_messages=messages,
            typing_delays=_delays(messages),
            session=result.session.to_dict(),
        )

    @app.post("/sessions")
    async def start_session() -> SessionResponse:
        session_id, session = registry.create()
        messages = session.start()
        logger.info("Started survey session %s", session_id)
        return SessionResponse(
            session_id=session_id,
            session=session.snapshot().to_dict(),
            bot_messages=messages,
            typing_delays=_delays(messages),
        )

    @app.get("/sessions/{session_id}")
    async def read_session(session_id: str) -> SessionResponse:
        session = registry.get(session_id)
        return SessionResponse(
            session_id=session_id,
            session=session.snapshot().to_dict(),
        )

    @app.post("/sessions/{session_id}/messages")
    async def post_message(session_id: str, payload: MessageRequest) -> SubmitResponse:
        session = registry.get(session_id)
        result = session.submit(payload.text)
        registry.release_if_complete(session_id)
        return _submit_response(session_id, result)

    @app.post("/sessions/{session_id}/topic")
    async def pick_topic(session_id: str, payload: TopicRequest) -> SubmitResponse:
        session = registry.get(session_id)
        result = session.pick_topic(payload.key)
        registry.release_if_complete(session_id)
        return _submit_response(session_id, result)

    @app.delete("/sessions/{session_id}")
    async def discard_session(session_id: str) -> Dict[str, str]:
        registry.discard(session_id)
        return {"status": "discarded"}

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - simple health check
        return {"status": "ok"}

    return app


def run_api_server(
    settings: AppSettings,
    *,
    host: str = "127.0.0.1",
    port: int = 8081,
    allow_origins: Sequence[str] | None = None,
    log_level: str = "info",
) -> None:
    """Start the survey FastAPI server."""

    app = create_app(settings=settings, allow_origins=allow_origins)
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m survey_chatbot.api",
        description="Serve the survey chatbot as a FastAPI service.",
    )
    add_server_arguments(parser)
    return parser.parse_args(argv)


def add_server_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface for the API server (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8081,
        help="Port for the API server (default: 8081).",
    )
    parser.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origin",
        help=(
            "Optional CORS origin(s) to allow. Defaults to '*' if not provided."
        ),
    )
    parser.add_argument(
        "--log-level",
        default="info",
        help="Logging level for uvicorn (default: info).",
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    try:
        settings = AppSettings.load()
    except RuntimeError as exc:
        logging.basicConfig(level=logging.INFO)
        logging.error("Failed to load AppSettings: %s", exc)
        raise SystemExit(1) from exc
    initialize_logging(settings.log_level)

    run_api_server(
        settings=settings,
        host=args.host,
        port=args.port,
        allow_origins=args.allow_origin,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
