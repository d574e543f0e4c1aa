from __future__ import annotations

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from conftest import RecordingSubmitter, make_settings
from survey_chatbot.api import SessionRegistry, create_app
from survey_chatbot.catalog import TOPICS


@pytest.fixture
def recorder() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def client(tmp_path, recorder: RecordingSubmitter) -> TestClient:
    app = create_app(make_settings(tmp_path), submitter=recorder)
    return TestClient(app)


def _start(client: TestClient) -> str:
    response = client.post("/sessions")
    assert response.status_code == 200
    body = response.json()
    assert body["session"]["stage"] == "email"
    assert len(body["bot_messages"]) == 2
    assert len(body["typing_delays"]) == 2
    return body["session_id"]


def test_full_conversation_over_http(
    client: TestClient, recorder: RecordingSubmitter
) -> None:
    session_id = _start(client)
    bad = client.post(f"/sessions/{session_id}/messages", json={"text": "a@b"})
    assert bad.json()["accepted"] is False
    assert bad.json()["session"]["stage"] == "email"

    for text in ("x@y.com", "Sam"):
        reply = client.post(f"/sessions/{session_id}/messages", json={"text": text})
        assert reply.json()["accepted"] is True

    topic = client.post(f"/sessions/{session_id}/topic", json={"key": "A"})
    assert topic.json()["session"]["record"]["topic_label"] == TOPICS["A"]

    for text in ("why", "tried", "blocker", "help"):
        last = client.post(f"/sessions/{session_id}/messages", json={"text": text})

    snapshot = last.json()["session"]
    assert snapshot["stage"] == "complete"
    assert snapshot["record"]["answers"] == ["why", "tried", "blocker", "help"]
    assert len(recorder.payloads) == 1

    again = client.post(f"/sessions/{session_id}/messages", json={"text": "more"})
    assert again.status_code == 404
    assert len(recorder.payloads) == 1


def test_length_errors_are_reported_inline(client: TestClient) -> None:
    session_id = _start(client)
    response = client.post(
        f"/sessions/{session_id}/messages", json={"text": "x" * 501}
    )
    body = response.json()
    assert body["accepted"] is False
    assert body["error_message"] == "Please keep your response under 500 characters."
    assert body["bot_messages"] == []
    assert body["session"]["pending_error"] == body["error_message"]


def test_unknown_session_is_404(client: TestClient) -> None:
    assert client.get("/sessions/missing").status_code == 404
    assert (
        client.post("/sessions/missing/messages", json={"text": "hi"}).status_code
        == 404
    )


def test_sessions_are_independent(client: TestClient) -> None:
    first = _start(client)
    second = _start(client)
    client.post(f"/sessions/{first}/messages", json={"text": "x@y.com"})
    assert client.get(f"/sessions/{first}").json()["session"]["stage"] == "name"
    assert client.get(f"/sessions/{second}").json()["session"]["stage"] == "email"


def test_discard_session(client: TestClient) -> None:
    session_id = _start(client)
    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert client.get(f"/sessions/{session_id}").status_code == 404
    assert client.delete(f"/sessions/{session_id}").status_code == 404


def test_completed_sessions_leave_the_registry(
    tmp_path, recorder: RecordingSubmitter
) -> None:
    app = create_app(make_settings(tmp_path), submitter=recorder)
    client = TestClient(app)
    for _ in range(20):
        session_id = _start(client)
        for text in ("x@y.com", "Sam", "A", "1", "2", "3", "4"):
            client.post(f"/sessions/{session_id}/messages", json={"text": text})
        assert client.get(f"/sessions/{session_id}").status_code == 404
    assert len(app.state.registry) == 0
    assert len(recorder.payloads) == 20


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_idle_sessions_expire(tmp_path, recorder: RecordingSubmitter) -> None:
    clock = FakeClock()
    registry = SessionRegistry(
        make_settings(tmp_path, session_ttl=60), recorder, clock=clock
    )
    stale, _ = registry.create()
    clock.now += 30
    active, _ = registry.create()
    clock.now += 40
    registry.get(active)

    assert stale not in registry
    assert active in registry
    with pytest.raises(HTTPException) as excinfo:
        registry.get(stale)
    assert excinfo.value.status_code == 404


def test_registry_evicts_least_recently_used_when_full(
    tmp_path, recorder: RecordingSubmitter
) -> None:
    clock = FakeClock()
    registry = SessionRegistry(
        make_settings(tmp_path, max_sessions=2), recorder, clock=clock
    )
    first, _ = registry.create()
    second, _ = registry.create()
    registry.get(first)
    third, _ = registry.create()

    assert len(registry) == 2
    assert second not in registry
    assert first in registry and third in registry
