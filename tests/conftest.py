"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from opencode_supervisor.http.client import SessionTransportError
from opencode_supervisor.supervisor.models import FileDiff, Session, SessionSummary


def text_part(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def tool_part(
    tool: str,
    *,
    exit_code: int | None = None,
    output: str | None = None,
    command: str | None = None,
    path: str | None = None,
) -> dict[str, Any]:
    tool_input: dict[str, Any] = {}
    if command is not None:
        tool_input["command"] = command
    if path is not None:
        tool_input["path"] = path
    metadata: dict[str, Any] = {}
    if exit_code is not None:
        metadata["exit"] = exit_code
    state: dict[str, Any] = {"status": "completed", "input": tool_input, "metadata": metadata}
    if output is not None:
        state["output"] = output
    return {"type": "tool", "tool": tool, "state": state}


def agent_response(finish: str | None, *parts: dict[str, Any]) -> dict[str, Any]:
    info: dict[str, Any] = {"role": "assistant"}
    if finish is not None:
        info["finish"] = finish
    return {"info": info, "parts": list(parts)}


class FakeSessionClient:
    """Scripted stand-in for SessionClient.

    ``responses`` are returned (or raised) by successive ``send_message``
    calls.  ``files`` feeds successive ``get_session`` calls; the last value
    repeats once the script runs out.
    """

    def __init__(
        self,
        *,
        responses: list[dict[str, Any] | Exception],
        files: list[int] | None = None,
        diffs: list[FileDiff] | None = None,
        create_error: Exception | None = None,
        fail_final_diff: bool = False,
        session_id: str = "s1",
    ) -> None:
        self.responses = list(responses)
        self.files = list(files or [0])
        self.diffs = list(diffs or [])
        self.create_error = create_error
        self.fail_final_diff = fail_final_diff
        self.session_id = session_id
        self.prompts: list[str] = []
        self.get_session_calls = 0

    def create_session(self) -> Session:
        if self.create_error is not None:
            raise self.create_error
        return Session(id=self.session_id)

    def get_session(self, session_id: str) -> Session:
        assert session_id == self.session_id
        self.get_session_calls += 1
        files = self.files.pop(0) if len(self.files) > 1 else self.files[0]
        return Session(
            id=session_id,
            summary=SessionSummary(additions=files * 10, deletions=files, files=files),
        )

    def get_session_diff(self, session_id: str) -> list[FileDiff]:
        assert session_id == self.session_id
        if self.fail_final_diff:
            raise SessionTransportError("connection reset", timed_out=False)
        return list(self.diffs)

    def send_message(self, session_id: str, text: str) -> dict[str, Any]:
        assert session_id == self.session_id
        self.prompts.append(text)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def fake_sleep(sleeps: list[float]):
    return sleeps.append
