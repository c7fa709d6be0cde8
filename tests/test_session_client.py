from __future__ import annotations

import json

import allure
import httpx
import pytest

from opencode_supervisor.config import ApiSettings
from opencode_supervisor.http.client import (
    SessionApiError,
    SessionClient,
    SessionProtocolError,
    SessionTransportError,
)
from opencode_supervisor.supervisor.models import FileDiff, Session, SessionSummary

pytestmark = [
    allure.epic("Task Supervisor"),
    allure.feature("OpenCode HTTP Client"),
]


def _client(handler) -> SessionClient:
    return SessionClient(
        api_url="http://opencode.local:4096/",
        username="opencode",
        password="secret",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )


def test_create_session_posts_empty_body_with_basic_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "s1", "time": {"created": 1700000000000}})

    with _client(handler) as client:
        session = client.create_session()

    assert session == Session(id="s1", created_at=1700000000000)
    assert seen[0].method == "POST"
    assert seen[0].url == "http://opencode.local:4096/session"
    assert seen[0].headers["Authorization"] == "Basic b3BlbmNvZGU6c2VjcmV0"
    assert json.loads(seen[0].content) == {}


def test_get_session_reads_summary() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/session/s1"
        return httpx.Response(
            200,
            json={
                "id": "s1",
                "title": "Health endpoint",
                "directory": "/sandbox/api",
                "summary": {"additions": 12, "deletions": 3, "files": 2},
            },
        )

    session = _client(handler).get_session("s1")

    assert session.summary == SessionSummary(additions=12, deletions=3, files=2)
    assert session.files_changed == 2
    assert session.title == "Health endpoint"


def test_missing_summary_counts_as_no_changes() -> None:
    session = _client(lambda request: httpx.Response(200, json={"id": "s1"})).get_session("s1")
    assert session.summary is None
    assert session.files_changed == 0


def test_get_session_diff_returns_entries_in_order() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/session/s1/diff"
        return httpx.Response(
            200,
            json=[
                {"path": "b.py", "additions": 1, "deletions": 0, "status": "added"},
                {"path": "a.py", "additions": 4, "deletions": 2},
                {"additions": 9},
            ],
        )

    diffs = _client(handler).get_session_diff("s1")

    assert diffs == [
        FileDiff(path="b.py", additions=1, deletions=0, status="added"),
        FileDiff(path="a.py", additions=4, deletions=2, status="modified"),
    ]


def test_send_message_wraps_text_in_parts() -> None:
    bodies: list[object] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/session/s1/message"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"info": {"finish": "stop"}, "parts": []})

    response = _client(handler).send_message("s1", "Fix the tests")

    assert bodies == [{"parts": [{"type": "text", "text": "Fix the tests"}]}]
    assert response["info"]["finish"] == "stop"


def test_non_2xx_raises_api_error_with_status() -> None:
    client = _client(lambda request: httpx.Response(503, text="busy"))

    with pytest.raises(SessionApiError) as excinfo:
        client.send_message("s1", "hi")

    assert excinfo.value.status_code == 503
    assert excinfo.value.reason == "Service Unavailable"
    assert str(excinfo.value) == "HTTP 503: Service Unavailable"


def test_timeout_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(SessionTransportError) as excinfo:
        _client(handler).get_session("s1")

    assert excinfo.value.timed_out is True


def test_connection_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SessionTransportError) as excinfo:
        _client(handler).create_session()

    assert excinfo.value.timed_out is False


def test_malformed_payloads_raise_protocol_error() -> None:
    client = _client(lambda request: httpx.Response(200, json={"title": "no id"}))
    with pytest.raises(SessionProtocolError):
        client.get_session("s1")

    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(SessionProtocolError):
        client.get_session_diff("s1")

    client = _client(lambda request: httpx.Response(200, json=["not", "an", "object"]))
    with pytest.raises(SessionProtocolError):
        client.send_message("s1", "hi")


def test_abort_session_is_best_effort() -> None:
    assert _client(lambda request: httpx.Response(200, json={"success": True})).abort_session("s1")
    assert not _client(
        lambda request: httpx.Response(200, json={"success": False}),
    ).abort_session("s1")
    assert not _client(lambda request: httpx.Response(404, json={})).abort_session("s1")

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    assert _client(handler).abort_session("s1") is False


def test_from_settings_uses_api_settings() -> None:
    client = SessionClient.from_settings(ApiSettings(api_url="http://127.0.0.1:4096/"))
    assert client.api_url == "http://127.0.0.1:4096"
    client.close()
